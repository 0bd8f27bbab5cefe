"""
Role and tier types (``allocation_kernel.domain.roles``).

Pure value objects for the access resolver.  A role label is drawn from a
closed enumeration and maps to an integer tier through a total function, so
there is no "unrecognized label" case to default away.  Absence of a stored
role means ``Role.USER``.
"""

from __future__ import annotations

from enum import Enum

MIN_TIER = 1
MAX_TIER = 5


class Role(str, Enum):
    """Role labels an actor may hold."""

    USER = "USER"
    VERIFIED = "VERIFIED"
    BUSINESS = "BUSINESS"
    PREMIUM = "PREMIUM"
    ADMIN = "ADMIN"

    @property
    def tier(self) -> int:
        return ROLE_TIERS[self]


ROLE_TIERS: dict[Role, int] = {
    Role.USER: 1,
    Role.VERIFIED: 2,
    Role.BUSINESS: 3,
    Role.PREMIUM: 4,
    Role.ADMIN: 5,
}

DEFAULT_ROLE = Role.USER


def tier_for(role: Role | None) -> int:
    """Resolve a (possibly absent) role to its tier."""
    return (role or DEFAULT_ROLE).tier


def is_valid_tier(value: int) -> bool:
    """True if ``value`` is a tier a priority floor may name."""
    return MIN_TIER <= value <= MAX_TIER
