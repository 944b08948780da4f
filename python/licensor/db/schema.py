"""Schema creation for both stores."""

from sqlalchemy.engine import Engine

from licensor.db.models import RegistryBase, SecretsBase


def create_all(registry_engine: Engine, secrets_engine: Engine) -> None:
    """Create any missing tables in the registry and secret stores."""
    RegistryBase.metadata.create_all(registry_engine)
    SecretsBase.metadata.create_all(secrets_engine)


def drop_all(registry_engine: Engine, secrets_engine: Engine) -> None:
    """Drop every licensor table from both stores."""
    RegistryBase.metadata.drop_all(registry_engine)
    SecretsBase.metadata.drop_all(secrets_engine)
