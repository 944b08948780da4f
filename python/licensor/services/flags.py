"""Provider capability flags.

A fixed, closed set of named capabilities packed into one integer bitmask
per provider. Unknown names are rejected at the HTTP boundary (see
``licensor.schemas.providers.FlagsIn``); this layer only ever looks at the
named bits, so extra bits read back from the store are ignored.
"""

from collections.abc import Mapping
from enum import IntFlag
from typing import Any


class Flag(IntFlag):
    """Named provider capabilities."""

    CHECK_SIGN = 1
    CHECK_TOKEN = 2
    MANAGE_PROVIDERS = 4


FLAG_NAMES: dict[str, Flag] = {
    "check_sign": Flag.CHECK_SIGN,
    "check_token": Flag.CHECK_TOKEN,
    "manage_providers": Flag.MANAGE_PROVIDERS,
}


def sum_flags(flags: Mapping[str, Any] | None) -> int:
    """OR together the bit of every truthy named flag.

    Args:
        flags: Mapping of flag name to truthy/falsy value. Names outside the
            closed set are ignored.

    Returns:
        Integer bitmask.
    """
    total = 0
    if flags:
        for name, bit in FLAG_NAMES.items():
            if flags.get(name):
                total |= bit
    return int(total)


def parse_flags(value: int) -> dict[str, bool]:
    """Decode every named bit of ``value`` into a boolean."""
    return {name: bool(value & bit) for name, bit in FLAG_NAMES.items()}


def has_flag(value: int, flag: Flag) -> bool:
    return bool(value & flag)
