"""Explicit service context.

Each worker process builds one ``LicenseServer`` at startup and hands it to
the FastAPI app. Nothing here is a process-wide singleton: store sessions,
clocks and the random source are carried by ``ServiceContext`` and passed
by reference into every component.
"""

import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session, sessionmaker

from licensor.config import Settings
from licensor.db.engine import create_db_engine
from licensor.db.session import create_session_factory
from licensor.logging import get_logger
from licensor.services import crypto
from licensor.services.licenses import LicenseVault
from licensor.services.providers import ProviderRegistry
from licensor.services.tokens import TokenAuthority

logger = get_logger(__name__)


@dataclass
class ServiceContext:
    """Collaborators shared by the registry, vault and token authority.

    Attributes:
        registry_sessions: Session factory for the registry store.
        secret_sessions: Session factory for the secret store.
        clock: Wall clock in unix seconds, used for token expiry.
        monotonic: Monotonic clock used for cache ages.
        random_bytes: Cryptographically secure random source.
    """

    registry_sessions: sessionmaker[Session]
    secret_sessions: sessionmaker[Session]
    clock: Callable[[], float] = time.time
    monotonic: Callable[[], float] = field(default=time.monotonic)
    random_bytes: Callable[[int], bytes] = field(default=crypto.random_bytes)


def build_context(settings: Settings) -> ServiceContext:
    """Create both store engines from settings and wrap them in a context."""
    registry_engine = create_db_engine(settings.database_url)
    secrets_engine = create_db_engine(settings.secrets_database_url)
    return ServiceContext(
        registry_sessions=create_session_factory(registry_engine),
        secret_sessions=create_session_factory(secrets_engine),
    )


class LicenseServer:
    """One worker's set of core components and their private caches."""

    def __init__(
        self,
        context: ServiceContext,
        provider_cache_ttl: float = 3600,
        provider_cache_sweep_interval: float = 3600,
        license_cache_ttl: float = 60,
        license_cache_sweep_interval: float = 60,
    ):
        self.context = context
        self.providers = ProviderRegistry(
            context, ttl=provider_cache_ttl, sweep_interval=provider_cache_sweep_interval
        )
        self.licenses = LicenseVault(
            context,
            self.providers,
            ttl=license_cache_ttl,
            sweep_interval=license_cache_sweep_interval,
        )
        self.tokens = TokenAuthority(context)

    @classmethod
    def from_settings(
        cls, settings: Settings, context: ServiceContext | None = None
    ) -> "LicenseServer":
        """Build a server using the cache settings and, by default, fresh engines."""
        return cls(
            context or build_context(settings),
            provider_cache_ttl=settings.provider_cache_ttl,
            provider_cache_sweep_interval=settings.provider_cache_sweep_interval,
            license_cache_ttl=settings.license_cache_ttl,
            license_cache_sweep_interval=settings.license_cache_sweep_interval,
        )

    def start(self) -> None:
        """Start the cache sweepers."""
        self.providers.cache.start()
        self.licenses.cache.start()
        logger.info("license_server_started", pid=os.getpid())

    def close(self) -> None:
        """Stop the cache sweepers."""
        self.providers.cache.stop()
        self.licenses.cache.stop()
        logger.info("license_server_stopped", pid=os.getpid())
