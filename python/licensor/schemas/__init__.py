"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from licensor.schemas.licenses import LicenseOut
from licensor.schemas.providers import FlagsIn, FlagsOut, ProviderOut

__all__ = [
    "FlagsIn",
    "FlagsOut",
    "LicenseOut",
    "ProviderOut",
]
