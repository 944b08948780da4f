"""License vault service layer.

A license is 8 random bytes bound to one (provider, content_id,
sequence_id) triple. At rest it is AES-256-CBC encrypted with the
provider's crypto_key/crypto_iv (one 16-byte block). Callers only ever see
the plaintext as 16 hex chars.

Security invariants:
- The stored ciphertext is never returned
- A license is written once; re-issuing the same triple is a conflict
- Plaintext material is never logged
"""

import re
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from licensor.db.models import License
from licensor.db.session import transaction
from licensor.errors import (
    ApiErrorCode,
    ConflictError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from licensor.logging import get_logger
from licensor.schemas.licenses import LicenseOut
from licensor.services.cache import Cache
from licensor.services.crypto import CryptoError, decrypt, encrypt, to_hex
from licensor.services.providers import ProviderRegistry

if TYPE_CHECKING:
    from licensor.context import ServiceContext

logger = get_logger(__name__)

LICENSE_LENGTH = 8

_DIGITS = re.compile(r"[0-9]+")

# Columns are BIGINT; anything wider cannot be stored or looked up.
MAX_ID = 2**63 - 1


def _as_int(value: Any) -> int | None:
    """Accept ints and digit strings in [0, MAX_ID]; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = int(value) if value.is_integer() else None
    elif isinstance(value, str):
        value = int(value) if _DIGITS.fullmatch(value) else None
    if not isinstance(value, int) or not 0 <= value <= MAX_ID:
        return None
    return value


def validate_ids(content_id: Any, sequence_id: Any = 0) -> tuple[int, int]:
    """Normalize content_id and sequence_id to ints.

    content_id is required and must be a non-negative integer; zero is a
    valid id. sequence_id is optional; a missing or empty value means 0.

    Raises:
        InvalidArgumentError: On a missing, non-numeric or out-of-range id.
    """
    content = _as_int(content_id) if content_id not in (None, "") else None
    if content is None:
        raise InvalidArgumentError(
            ApiErrorCode.E_CONTENT_ID_INVALID, "Missing or invalid content_id"
        )
    if sequence_id in (None, ""):
        return content, 0
    sequence = _as_int(sequence_id)
    if sequence is None:
        raise InvalidArgumentError(ApiErrorCode.E_SEQUENCE_ID_INVALID, "Invalid sequence_id")
    return content, sequence


def cache_key(provider_name: str, content_id: int, sequence_id: int) -> str:
    return f"{provider_name}_{content_id}_{sequence_id}"


class LicenseVault:
    """Issues and retrieves licenses, encrypted at rest per provider."""

    def __init__(
        self,
        context: "ServiceContext",
        providers: ProviderRegistry,
        ttl: float = 60,
        sweep_interval: float = 60,
    ):
        self._ctx = context
        self._providers = providers
        self.cache = Cache("licenses", ttl, sweep_interval, clock=context.monotonic)

    def create(self, provider_name: Any, content_id: Any, sequence_id: Any = 0) -> LicenseOut:
        """Issue a new license.

        Args:
            provider_name: Name of the owning provider.
            content_id: Positive integer id of the content.
            sequence_id: Optional non-negative integer, default 0.

        Returns:
            The identifying fields and the hex-encoded plaintext license.

        Raises:
            InvalidArgumentError: Bad content_id or sequence_id.
            NotFoundError: Provider does not exist.
            ConflictError: A license already exists for this triple.
            InternalError: Store or crypto failure.
        """
        content, sequence = validate_ids(content_id, sequence_id)
        provider = self._providers.get_raw(provider_name)

        material = self._ctx.random_bytes(LICENSE_LENGTH)
        try:
            ciphertext = encrypt(material, provider.crypto_key, provider.crypto_iv)
        except CryptoError as exc:
            logger.error("license_encrypt_failed", provider=provider.name, error=str(exc))
            raise InternalError() from exc

        try:
            with self._ctx.registry_sessions() as db, transaction(db):
                db.add(
                    License(
                        provider_id=provider.id,
                        content_id=content,
                        sequence_id=sequence,
                        license=ciphertext,
                    )
                )
        except IntegrityError as exc:
            raise ConflictError(ApiErrorCode.E_LICENSE_EXISTS, "License exists") from exc
        except SQLAlchemyError as exc:
            logger.error("license_insert_failed", provider=provider.name, error=str(exc))
            raise InternalError() from exc

        logger.info(
            "license_created",
            provider=provider.name,
            content_id=content,
            sequence_id=sequence,
        )
        return LicenseOut(
            provider_id=provider.id,
            content_id=content,
            sequence_id=sequence,
            license=to_hex(material),
        )

    def get(self, provider_name: Any, content_id: Any, sequence_id: Any = 0) -> str:
        """Return the hex-encoded plaintext license, through the cache.

        Raises:
            InvalidArgumentError: Bad content_id or sequence_id.
            NotFoundError: Provider or license does not exist.
            InternalError: Store or crypto failure.
        """
        content, sequence = validate_ids(content_id, sequence_id)
        if not provider_name or not isinstance(provider_name, str):
            raise NotFoundError(ApiErrorCode.E_PROVIDER_NOT_FOUND)
        key = cache_key(provider_name, content, sequence)
        return self.cache.get(key, lambda: self._load(key))

    def _load(self, key: str) -> str:
        # Provider names may contain underscores; the two ids never do.
        provider_name, content, sequence = key.rsplit("_", 2)
        provider = self._providers.get_raw(provider_name)

        logger.debug("license_cache_miss", provider=provider_name, content_id=content)
        try:
            with self._ctx.registry_sessions() as db:
                ciphertext = db.scalar(
                    select(License.license).where(
                        License.provider_id == provider.id,
                        License.content_id == int(content),
                        License.sequence_id == int(sequence),
                    )
                )
        except SQLAlchemyError as exc:
            logger.error("license_lookup_failed", provider=provider_name, error=str(exc))
            raise InternalError() from exc

        if ciphertext is None:
            raise NotFoundError(ApiErrorCode.E_LICENSE_NOT_FOUND)

        try:
            return to_hex(decrypt(ciphertext, provider.crypto_key, provider.crypto_iv))
        except CryptoError as exc:
            logger.error("license_decrypt_failed", provider=provider_name, error=str(exc))
            raise InternalError() from exc
