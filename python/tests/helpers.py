"""Test helpers for signing requests and controlling time.

Provides:
- FakeClock: a settable clock for token expiry and cache ages
- signed(): add a ``sign`` parameter the way provider clients do
- make_token(): mint a one-time token for a provider
"""

import os
from typing import Any

from licensor.schemas.providers import ProviderOut
from licensor.services.signature import sign
from licensor.services.tokens import build_token

# Fixed "now" for tests (2023-11-14T22:13:20Z)
FROZEN_NOW = 1_700_000_000.0


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: float = FROZEN_NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def signed(params: dict[str, Any], provider: ProviderOut, **extra_for_sign) -> dict[str, Any]:
    """Return ``params`` plus a signature by ``provider``.

    ``extra_for_sign`` holds values that are part of the signed set but
    travel in the URL path (content_id, name) rather than the body/query.
    """
    to_sign = {**params, **extra_for_sign}
    return {**params, "sign": sign(to_sign, provider.sign_iv, provider.sign_key)}


def make_token(provider: ProviderOut, exp: int, payload: str | None = None) -> str:
    """Mint a 70-char one-time token signed by ``provider``."""
    payload = payload or os.urandom(8).hex()
    return build_token(payload, exp, provider.sign_iv, provider.sign_key)
