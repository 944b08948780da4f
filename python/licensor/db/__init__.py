"""Database module for licensor.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from licensor.db.engine import create_db_engine, get_registry_engine, get_secrets_engine
from licensor.db.models import License, Provider, ProviderSecret, RegistryBase, SecretsBase, Token
from licensor.db.schema import create_all
from licensor.db.session import create_session_factory, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_registry_engine",
    "get_secrets_engine",
    "create_session_factory",
    "transaction",
    "create_all",
    # Bases
    "RegistryBase",
    "SecretsBase",
    # Models
    "Provider",
    "License",
    "Token",
    "ProviderSecret",
]
