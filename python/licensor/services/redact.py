"""Hashing and log guard utilities.

- fingerprint: short stable SHA-256 prefix for log correlation
- safe_kv: log guard that blocks forbidden keys at call site

Never-log policy:
- sign_key, crypto_key, crypto_iv (raw or hex)
- Plaintext license material
- Request signatures and tokens

Allowed (with suffix):
- _sha256, _hash, _fp: hash of the value
- _length, _chars: length of the value
"""

import hashlib
import os

FORBIDDEN_KEYS = frozenset(
    {
        "sign",
        "sign_key",
        "crypto_key",
        "crypto_iv",
        "license",
        "token",
        "secret",
        "raw_body",
    }
)

REDACTED_SUFFIXES = ("_sha256", "_hash", "_fp", "_length", "_chars")


def fingerprint(value: str | bytes, length: int = 12) -> str:
    """Short SHA-256 hex prefix of ``value``.

    Stable: same input always produces same output. Used to correlate log
    lines about a token or license without exposing it.
    """
    if isinstance(value, str):
        value = value.encode("utf-8")
    return hashlib.sha256(value).hexdigest()[:length]


def _has_redacted_suffix(key: str) -> bool:
    return any(key.endswith(suffix) for suffix in REDACTED_SUFFIXES)


def safe_kv(*, _env: str | None = None, **kwargs) -> dict:
    """Validate that no forbidden keys are present unless already redacted.

    Raises ValueError in local/test environments if a forbidden key is used
    without a redacted suffix. In staging/prod, logs a warning instead.

    Usage:
        logger.info("token_consumed", **safe_kv(
            payload_fp=fingerprint(payload),   # OK: _fp suffix
            # token=token,                      # BLOCKED: forbidden key
        ))

    Args:
        _env: Override for LICENSOR_ENV (test-only). If None, reads from env.
        **kwargs: Keyword arguments to validate and return.

    Returns:
        The same kwargs dict, after validation.

    Raises:
        ValueError: In local/test, if a forbidden key is used without redacted suffix.
    """
    violations = [
        key for key in kwargs if key in FORBIDDEN_KEYS and not _has_redacted_suffix(key)
    ]

    if violations:
        msg = f"Forbidden log keys without redacted suffix: {violations}"
        env = _env or os.environ.get("LICENSOR_ENV", "local")
        if env in ("local", "test"):
            raise ValueError(msg)
        from licensor.logging import get_logger

        get_logger(__name__).warning("safe_kv_violation", forbidden_keys=violations)
        for key in violations:
            kwargs.pop(key)

    return kwargs
