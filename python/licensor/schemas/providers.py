"""Provider Pydantic schemas.

Secrets never leave the backend except sign_iv/sign_key, hex-encoded, in
create/get/destroy responses. crypto_iv and crypto_key are never part of
any response schema.
"""

from pydantic import BaseModel, ConfigDict


class FlagsIn(BaseModel):
    """Requested capabilities for a new provider.

    The set of names is closed: any other key is a validation error.
    Values accept the usual truthy forms (true/false, 1/0).
    """

    check_sign: bool = False
    check_token: bool = False
    manage_providers: bool = False

    model_config = ConfigDict(extra="forbid")


class FlagsOut(BaseModel):
    """Decoded capability bits of a stored provider."""

    check_sign: bool
    check_token: bool
    manage_providers: bool


class ProviderOut(BaseModel):
    """Public view of a provider.

    Excluded fields (never present in response):
    - id, secret_ref
    - crypto_iv, crypto_key

    sign_iv/sign_key are None only when a destroy could not read the
    provider's secret row.
    """

    name: str
    flags: FlagsOut
    sign_iv: str | None = None
    sign_key: str | None = None
