"""
Pure domain layer.

This module contains value objects and domain logic with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic, except the clocks,
which are injected into services.
"""

from allocation_kernel.domain.allocation import (
    REQUEST_TRANSITIONS,
    TERMINAL_REQUEST_STATUSES,
    AccessProfile,
    AllocationRequestInfo,
    BalanceInfo,
    LedgerSettings,
    RequestStatus,
    ResourceTypeInfo,
    SystemStateInfo,
    can_transition,
    effective_status,
    is_expired,
    is_storable,
)
from allocation_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from allocation_kernel.domain.history import PriceHistory
from allocation_kernel.domain.roles import ROLE_TIERS, Role, tier_for

__all__ = [
    "AccessProfile",
    "AllocationRequestInfo",
    "BalanceInfo",
    "Clock",
    "DeterministicClock",
    "LedgerSettings",
    "PriceHistory",
    "REQUEST_TRANSITIONS",
    "ROLE_TIERS",
    "RequestStatus",
    "ResourceTypeInfo",
    "Role",
    "SequentialClock",
    "SystemClock",
    "SystemStateInfo",
    "TERMINAL_REQUEST_STATUSES",
    "can_transition",
    "effective_status",
    "is_expired",
    "is_storable",
    "tier_for",
]
