"""License Pydantic schemas."""

from pydantic import BaseModel


class LicenseOut(BaseModel):
    """A freshly issued license.

    ``license`` is the unencrypted 8-byte material as 16 hex chars. The
    stored ciphertext is never returned.
    """

    provider_id: int
    content_id: int
    sequence_id: int
    license: str
