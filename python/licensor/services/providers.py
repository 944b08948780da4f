"""Provider registry service layer.

A provider spans two stores:
- registry store: ``providers`` row with name, flags and ``secret_ref``
- secret store: ``provider_secrets`` row with the sign and crypto secrets

There is no cross-store transaction. ``create`` writes the secret first and
compensates with a single best-effort delete if the registry insert fails.
``destroy`` deletes the secret first, so a failure in between leaves a
dangling ``secret_ref`` rather than an unreachable secret.

Security invariants:
- crypto_iv / crypto_key never leave this module except via ``get_raw``
- Secret material is never logged
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from licensor.db.models import Provider, ProviderSecret
from licensor.db.session import transaction
from licensor.errors import (
    ApiErrorCode,
    ConflictError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from licensor.logging import get_logger
from licensor.schemas.providers import FlagsOut, ProviderOut
from licensor.services.cache import Cache
from licensor.services.crypto import to_hex
from licensor.services.flags import parse_flags, sum_flags

if TYPE_CHECKING:
    from licensor.context import ServiceContext

logger = get_logger(__name__)

NAME_PATTERN = re.compile(r"\w{5,255}", re.ASCII)

IV_LENGTH = 16
KEY_LENGTH = 32


@dataclass(frozen=True)
class ProviderRecord:
    """Merged registry and secret rows. Internal use only."""

    id: int
    name: str
    flags: int
    secret_ref: int
    sign_iv: bytes | None = field(default=None, repr=False)
    sign_key: bytes | None = field(default=None, repr=False)
    crypto_iv: bytes | None = field(default=None, repr=False)
    crypto_key: bytes | None = field(default=None, repr=False)


def provider_view(record: ProviderRecord) -> ProviderOut:
    """Public view: name, decoded flags and hex sign secrets."""
    return ProviderOut(
        name=record.name,
        flags=FlagsOut(**parse_flags(record.flags)),
        sign_iv=to_hex(record.sign_iv) if record.sign_iv is not None else None,
        sign_key=to_hex(record.sign_key) if record.sign_key is not None else None,
    )


def validate_name(name: Any) -> str:
    """Check a new provider name.

    Raises:
        InvalidArgumentError: If the name is missing or not 5-255 word characters.
    """
    if not name:
        raise InvalidArgumentError(ApiErrorCode.E_NAME_MISSING, "Name missing")
    if not isinstance(name, str) or not NAME_PATTERN.fullmatch(name):
        raise InvalidArgumentError(ApiErrorCode.E_NAME_INVALID, "Invalid name")
    return name


class ProviderRegistry:
    """Creates, destroys and resolves providers across both stores."""

    def __init__(self, context: "ServiceContext", ttl: float = 3600, sweep_interval: float = 3600):
        self._ctx = context
        self.cache = Cache("providers", ttl, sweep_interval, clock=context.monotonic)

    def create(self, name: Any, flags: Mapping[str, Any] | None = None) -> ProviderOut:
        """Register a new provider with freshly generated secrets.

        Args:
            name: Unique provider name, 5-255 word characters.
            flags: Mapping of capability name to truthy value.

        Returns:
            The new provider with hex sign_iv/sign_key.

        Raises:
            InvalidArgumentError: Name missing or invalid.
            ConflictError: Name already registered.
            InternalError: Store failure.
        """
        name = validate_name(name)

        try:
            with self._ctx.registry_sessions() as db:
                count = db.scalar(
                    select(func.count()).select_from(Provider).where(Provider.name == name)
                )
        except SQLAlchemyError as exc:
            logger.error("provider_name_check_failed", name=name, error=str(exc))
            raise InternalError() from exc
        if count:
            raise ConflictError(ApiErrorCode.E_NAME_EXISTS, "Name exists")

        rand = self._ctx.random_bytes
        secret = ProviderSecret(
            sign_iv=rand(IV_LENGTH),
            sign_key=rand(KEY_LENGTH),
            crypto_iv=rand(IV_LENGTH),
            crypto_key=rand(KEY_LENGTH),
        )

        try:
            with self._ctx.secret_sessions() as db, transaction(db):
                db.add(secret)
                db.flush()
                secret_id = secret.id
        except SQLAlchemyError as exc:
            logger.error("provider_secret_insert_failed", name=name, error=str(exc))
            raise InternalError() from exc

        flag_bits = sum_flags(flags)
        try:
            with self._ctx.registry_sessions() as db, transaction(db):
                provider = Provider(name=name, flags=flag_bits, secret_ref=secret_id)
                db.add(provider)
                db.flush()
                provider_id = provider.id
        except Exception as exc:
            logger.error(
                "provider_insert_failed", name=name, secret_ref=secret_id, error=str(exc)
            )
            self._compensate_secret(secret_id)
            if isinstance(exc, IntegrityError):
                raise ConflictError(ApiErrorCode.E_NAME_EXISTS, "Name exists") from exc
            if isinstance(exc, SQLAlchemyError):
                raise InternalError() from exc
            raise

        logger.info("provider_created", name=name, provider_id=provider_id, flags=flag_bits)
        return provider_view(
            ProviderRecord(
                id=provider_id,
                name=name,
                flags=flag_bits,
                secret_ref=secret_id,
                sign_iv=secret.sign_iv,
                sign_key=secret.sign_key,
            )
        )

    def _compensate_secret(self, secret_id: int) -> None:
        """Best-effort delete of an orphaned secret row. Failures are only logged."""
        try:
            with self._ctx.secret_sessions() as db, transaction(db):
                db.execute(delete(ProviderSecret).where(ProviderSecret.id == secret_id))
        except SQLAlchemyError as exc:
            logger.error(
                "provider_secret_compensation_failed", secret_ref=secret_id, error=str(exc)
            )
        else:
            logger.info("provider_secret_compensated", secret_ref=secret_id)

    def destroy(self, name: Any) -> ProviderOut:
        """Delete a provider and its secrets.

        Returns:
            The provider as it was before deletion. sign_iv/sign_key are None
            if the secret row could not be read.

        Raises:
            NotFoundError: Provider does not exist.
            InternalError: Store failure during a delete.
        """
        if not name:
            raise NotFoundError(ApiErrorCode.E_PROVIDER_NOT_FOUND)

        try:
            with self._ctx.registry_sessions() as db:
                provider = db.scalar(select(Provider).where(Provider.name == name))
        except SQLAlchemyError as exc:
            logger.error("provider_lookup_failed", name=name, error=str(exc))
            raise InternalError() from exc
        if provider is None:
            raise NotFoundError(ApiErrorCode.E_PROVIDER_NOT_FOUND)

        secret = None
        try:
            with self._ctx.secret_sessions() as db:
                secret = db.get(ProviderSecret, provider.secret_ref)
        except SQLAlchemyError as exc:
            logger.error(
                "provider_secret_lookup_failed",
                name=name,
                secret_ref=provider.secret_ref,
                error=str(exc),
            )
        if secret is None:
            logger.warning("provider_secret_missing", name=name, secret_ref=provider.secret_ref)

        try:
            with self._ctx.secret_sessions() as db, transaction(db):
                db.execute(delete(ProviderSecret).where(ProviderSecret.id == provider.secret_ref))
        except SQLAlchemyError as exc:
            logger.error("provider_secret_delete_failed", name=name, error=str(exc))
            raise InternalError() from exc

        try:
            with self._ctx.registry_sessions() as db, transaction(db):
                db.execute(delete(Provider).where(Provider.id == provider.id))
        except SQLAlchemyError as exc:
            logger.error(
                "provider_delete_failed_dangling_secret_ref",
                name=name,
                secret_ref=provider.secret_ref,
                error=str(exc),
            )
            raise InternalError() from exc
        finally:
            self.cache.invalidate(name)

        logger.info("provider_destroyed", name=name, provider_id=provider.id)
        return provider_view(
            ProviderRecord(
                id=provider.id,
                name=provider.name,
                flags=provider.flags,
                secret_ref=provider.secret_ref,
                sign_iv=secret.sign_iv if secret is not None else None,
                sign_key=secret.sign_key if secret is not None else None,
            )
        )

    def get_raw(self, name: Any) -> ProviderRecord:
        """Cached lookup of the full provider record, including crypto secrets.

        Raises:
            NotFoundError: Name empty or provider absent from either store.
            InternalError: Store failure.
        """
        if not name or not isinstance(name, str):
            raise NotFoundError(ApiErrorCode.E_PROVIDER_NOT_FOUND)
        return self.cache.get(name, lambda: self._load(name))

    def get(self, name: Any) -> ProviderOut:
        """Cached lookup of the public provider view."""
        return provider_view(self.get_raw(name))

    def _load(self, name: str) -> ProviderRecord:
        logger.debug("provider_cache_miss", name=name)
        try:
            with self._ctx.registry_sessions() as db:
                provider = db.scalar(select(Provider).where(Provider.name == name))
            if provider is None:
                raise NotFoundError(ApiErrorCode.E_PROVIDER_NOT_FOUND)
            with self._ctx.secret_sessions() as db:
                secret = db.get(ProviderSecret, provider.secret_ref)
        except SQLAlchemyError as exc:
            logger.error("provider_load_failed", name=name, error=str(exc))
            raise InternalError() from exc

        if secret is None:
            logger.error("provider_secret_missing", name=name, secret_ref=provider.secret_ref)
            raise NotFoundError(ApiErrorCode.E_PROVIDER_NOT_FOUND)

        return ProviderRecord(
            id=provider.id,
            name=provider.name,
            flags=provider.flags,
            secret_ref=provider.secret_ref,
            sign_iv=secret.sign_iv,
            sign_key=secret.sign_key,
            crypto_iv=secret.crypto_iv,
            crypto_key=secret.crypto_key,
        )
