"""Request signature codec.

Every authenticated request carries a ``sign`` parameter computed from the
remaining parameters and the provider's signing secret:

1. Canonicalize: drop ``sign``, percent-encode every ``key=value`` pair
   (nested mappings and lists are JSON-encoded first), sort the pairs as
   strings and join them with ``&``.
2. SHA-1 the canonical string, pad the 20-byte digest with 12 zero bytes.
3. AES-256-CBC encrypt the 32-byte buffer with sign_key/sign_iv, keeping
   only the update output.
4. Base64-encode the 32 ciphertext bytes.

The byte layout is fixed by existing clients and must not change.
"""

import base64
import hashlib
import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from licensor.services.crypto import cbc_update

SIGN_FIELD = "sign"

# Characters left unescaped, matching JavaScript's encodeURIComponent.
_SAFE_CHARS = "-_.!~*'()"

_DIGEST_PAD = b"\x00" * 12


def _encode(value: str) -> str:
    return quote(value, safe=_SAFE_CHARS)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def canonicalize(params: Mapping[str, Any]) -> str:
    """Build the canonical string that gets signed.

    Args:
        params: Flat request parameters. The ``sign`` entry, if any, is ignored.

    Returns:
        Sorted, ``&``-joined, percent-encoded ``key=value`` pairs.
    """
    pairs = [
        f"{_encode(str(key))}={_encode(_stringify(value))}"
        for key, value in params.items()
        if key != SIGN_FIELD
    ]
    return "&".join(sorted(pairs))


def sign(params: Mapping[str, Any], iv: bytes | str, key: bytes | str) -> str:
    """Compute the base64 signature for ``params``.

    Args:
        params: Request parameters.
        iv: Provider sign_iv (16 bytes, raw or hex).
        key: Provider sign_key (32 bytes, raw or hex).

    Raises:
        CryptoError: If the key or IV has the wrong size.
    """
    digest = hashlib.sha1(canonicalize(params).encode("utf-8")).digest()
    encrypted = cbc_update(digest + _DIGEST_PAD, key, iv)
    return base64.b64encode(encrypted).decode("ascii")


def verify(params: Mapping[str, Any], iv: bytes | str, key: bytes | str) -> bool:
    """Check the ``sign`` entry of ``params`` against a freshly computed signature.

    Returns False when ``sign`` is absent or empty. ``params`` is not modified.
    """
    provided = params.get(SIGN_FIELD)
    if not provided:
        return False
    return provided == sign(params, iv, key)
