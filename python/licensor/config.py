"""Application settings loaded from environment variables.

Environment Configuration:
    LICENSOR_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Registry store connection string (required)
    SECRETS_DATABASE_URL: Secret store connection string (required)

Cache Configuration:
    PROVIDER_CACHE_TTL / PROVIDER_CACHE_SWEEP_INTERVAL: provider-by-name cache (seconds)
    LICENSE_CACHE_TTL / LICENSE_CACHE_SWEEP_INTERVAL: license-by-key cache (seconds)

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (required for worker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)
    TOKEN_SWEEP_INTERVAL: Period of the expired token sweep (seconds)

Server Configuration:
    HTTP_HOST, HTTP_PORT, WORKERS, SSL_KEYFILE, SSL_CERTFILE

Note: The registry and secret stores are separate databases. In staging/prod
they must not share a URL.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL and SECRETS_DATABASE_URL are always required
    - SSL_KEYFILE / SSL_CERTFILE are required in staging and prod
    - The two store URLs must differ in staging and prod
    - Cache TTLs and sweep intervals must be >= 1
    """

    licensor_env: Environment = Field(default=Environment.LOCAL, alias="LICENSOR_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    secrets_database_url: Annotated[str, Field(alias="SECRETS_DATABASE_URL")]

    # Cache settings
    provider_cache_ttl: int = Field(default=3600, alias="PROVIDER_CACHE_TTL")
    provider_cache_sweep_interval: int = Field(default=3600, alias="PROVIDER_CACHE_SWEEP_INTERVAL")
    license_cache_ttl: int = Field(default=60, alias="LICENSE_CACHE_TTL")
    license_cache_sweep_interval: int = Field(default=60, alias="LICENSE_CACHE_SWEEP_INTERVAL")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")
    token_sweep_interval: int = Field(default=3600, alias="TOKEN_SWEEP_INTERVAL")

    # Server settings
    http_host: str = Field(default="0.0.0.0", alias="HTTP_HOST")
    http_port: int = Field(default=8443, alias="HTTP_PORT")
    workers: int = Field(default=4, alias="WORKERS")
    ssl_keyfile: str | None = Field(default=None, alias="SSL_KEYFILE")
    ssl_certfile: str | None = Field(default=None, alias="SSL_CERTFILE")

    # Logging
    log_json: bool = Field(default=True, alias="LOG_JSON")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Check interval floors and production-only requirements."""
        for alias, value in (
            ("PROVIDER_CACHE_TTL", self.provider_cache_ttl),
            ("PROVIDER_CACHE_SWEEP_INTERVAL", self.provider_cache_sweep_interval),
            ("LICENSE_CACHE_TTL", self.license_cache_ttl),
            ("LICENSE_CACHE_SWEEP_INTERVAL", self.license_cache_sweep_interval),
            ("TOKEN_SWEEP_INTERVAL", self.token_sweep_interval),
            ("WORKERS", self.workers),
        ):
            if value < 1:
                raise ValueError(f"{alias} must be >= 1, got {value}")

        if self.licensor_env in (Environment.STAGING, Environment.PROD):
            missing_tls = []
            if not self.ssl_keyfile:
                missing_tls.append("SSL_KEYFILE")
            if not self.ssl_certfile:
                missing_tls.append("SSL_CERTFILE")
            if missing_tls:
                raise ValueError(
                    f"Missing TLS settings for LICENSOR_ENV={self.licensor_env.value}: "
                    f"{', '.join(missing_tls)}"
                )
            if self.database_url == self.secrets_database_url:
                raise ValueError(
                    "SECRETS_DATABASE_URL must point to a different database than DATABASE_URL"
                )

        return self

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
