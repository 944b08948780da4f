"""Pytest configuration and fixtures for licensor tests.

Test isolation strategy:
- Each test gets two fresh in-memory SQLite databases (registry store and
  secret store), each on a StaticPool so every session sees the same data
- Time is controlled by a FakeClock shared by token expiry and cache ages
- The HTTP client wraps an app built around the test's LicenseServer
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Settings are read at import time by licensor.celery; give them safe defaults.
os.environ.setdefault("LICENSOR_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRETS_DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("LOG_JSON", "false")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from licensor.app import create_app
from licensor.config import clear_settings_cache
from licensor.context import LicenseServer, ServiceContext
from licensor.db.schema import create_all
from licensor.db.session import create_session_factory
from licensor.schemas.providers import ProviderOut
from tests.helpers import FakeClock


def _memory_engine() -> Engine:
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def registry_engine() -> Generator[Engine, None, None]:
    """In-memory registry store (providers, licenses, tokens)."""
    engine = _memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def secrets_engine() -> Generator[Engine, None, None]:
    """In-memory secret store (provider_secrets)."""
    engine = _memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context(registry_engine: Engine, secrets_engine: Engine, clock: FakeClock) -> ServiceContext:
    """ServiceContext over fresh schemas with a controllable clock."""
    create_all(registry_engine, secrets_engine)
    return ServiceContext(
        registry_sessions=create_session_factory(registry_engine),
        secret_sessions=create_session_factory(secrets_engine),
        clock=clock,
        monotonic=clock,
    )


@pytest.fixture
def server(context: ServiceContext) -> LicenseServer:
    """A LicenseServer with default cache TTLs and no running sweepers."""
    return LicenseServer(context)


@pytest.fixture
def root_provider(server: LicenseServer) -> ProviderOut:
    """A provider allowed to manage other providers."""
    return server.providers.create("root_provider", {"manage_providers": True})


@pytest.fixture
def plain_provider(server: LicenseServer) -> ProviderOut:
    """A provider with no flags: license reads need no authentication."""
    return server.providers.create("plain_provider", {})


@pytest.fixture
def client(server: LicenseServer) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client bound to the test's LicenseServer."""
    app = create_app(server, log_requests=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
