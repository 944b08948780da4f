"""SQLAlchemy ORM models for licensor.

The registry store and the secret store are separate databases, so the
models live on two independent declarative bases. No foreign key crosses
the boundary: ``Provider.secret_ref`` is a plain integer into the secret
store's id space.
"""

from sqlalchemy import BigInteger, Integer, LargeBinary, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class RegistryBase(DeclarativeBase):
    """Base class for registry store models."""

    pass


class SecretsBase(DeclarativeBase):
    """Base class for secret store models."""

    pass


# =============================================================================
# Registry store
# =============================================================================


class Provider(RegistryBase):
    """A registered client that may request licenses."""

    __tablename__ = "providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    flags: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    secret_ref: Mapped[int] = mapped_column(Integer, nullable=False)


class License(RegistryBase):
    """Encrypted license material for one (provider, content, sequence) triple."""

    __tablename__ = "licenses"

    provider_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    content_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    sequence_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False, default=0
    )
    license: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False)


class Token(RegistryBase):
    """Anti-replay ledger row. Presence means the token was already consumed."""

    __tablename__ = "tokens"

    # Declared wider than the 16 hex chars produced by clients.
    payload: Mapped[str] = mapped_column(String(128), primary_key=True)
    exp: Mapped[int] = mapped_column(BigInteger, nullable=False)


# =============================================================================
# Secret store
# =============================================================================


class ProviderSecret(SecretsBase):
    """Signing and content-encryption secrets for one provider."""

    __tablename__ = "provider_secrets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sign_iv: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False)
    sign_key: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    crypto_iv: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False)
    crypto_key: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
