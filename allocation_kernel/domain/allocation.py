"""
Allocation domain types (``allocation_kernel.domain.allocation``).

Responsibility
--------------
Pure value objects for the allocation ledger: the request lifecycle state
machine, the lazy-expiry predicate, frozen DTOs returned by selectors and
services, and the ``LedgerSettings`` the kernel is constructed with.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* One-way lifecycle -- ``REQUEST_TRANSITIONS`` defines the only valid
  status transitions.  Terminal states have no outgoing edges.
* Lazy expiry -- ``effective_status`` reports a PENDING request past its
  expiration height as EXPIRED without any stored transition.
* Priority snapshot -- ``AllocationRequestInfo.priority_snapshot`` is the
  requester's tier at submission and is never recomputed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from allocation_kernel.domain.history import DEFAULT_PRICE_HISTORY_CAPACITY

# 24 hours at one height per ten minutes.
DEFAULT_REQUEST_EXPIRY_WINDOW = 144
DEFAULT_GLOBAL_CAP = 1_000_000_000
MAX_RESOURCE_NAME_LENGTH = 64
MAX_PURPOSE_LENGTH = 256
# Ids, heights and amounts are persisted as signed 64-bit integers.
MAX_STORED_INTEGER = 2**63 - 1
MIN_STORED_INTEGER = -(2**63)


# =========================================================================
# Request Status Lifecycle
# =========================================================================


class RequestStatus(str, Enum):
    """Allocation request lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.EXPIRED,
    }),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
}

TERMINAL_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.EXPIRED,
})


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    """True if the lifecycle allows ``current -> target``."""
    return target in REQUEST_TRANSITIONS.get(current, frozenset())


def is_storable(value: int) -> bool:
    """True if ``value`` fits the BIGINT columns the ledger persists to."""
    return MIN_STORED_INTEGER <= value <= MAX_STORED_INTEGER


def is_expired(expires_at: int, now: int) -> bool:
    """A request expires once the clock has moved strictly past its height."""
    return now > expires_at


def effective_status(status: RequestStatus, expires_at: int, now: int) -> RequestStatus:
    """Status as observed at height ``now`` (lazy expiry)."""
    if status == RequestStatus.PENDING and is_expired(expires_at, now):
        return RequestStatus.EXPIRED
    return status


# =========================================================================
# Settings
# =========================================================================


@dataclass(frozen=True)
class LedgerSettings:
    """Construction-time parameters of a ledger instance.

    ``administrator`` is fixed for the lifetime of the ledger; it is never
    re-derived at call time.  ``default_global_cap`` and
    ``default_emergency_contact`` seed SystemState at initialize().
    """

    administrator: str
    default_global_cap: int = DEFAULT_GLOBAL_CAP
    default_emergency_contact: str | None = None
    request_expiry_window: int = DEFAULT_REQUEST_EXPIRY_WINDOW
    price_history_capacity: int = DEFAULT_PRICE_HISTORY_CAPACITY

    def __post_init__(self) -> None:
        if not self.administrator:
            raise ValueError("LedgerSettings.administrator is required")
        if not 0 < self.default_global_cap <= MAX_STORED_INTEGER:
            raise ValueError(f"default_global_cap must be within 1..{MAX_STORED_INTEGER}")
        if not 0 < self.request_expiry_window <= MAX_STORED_INTEGER:
            raise ValueError(f"request_expiry_window must be within 1..{MAX_STORED_INTEGER}")
        if self.price_history_capacity <= 0:
            raise ValueError("price_history_capacity must be positive")

    @property
    def emergency_contact(self) -> str:
        return self.default_emergency_contact or self.administrator


# =========================================================================
# DTOs
# =========================================================================


@dataclass(frozen=True)
class SystemStateInfo:
    """Snapshot of the control-plane singleton."""

    initialized: bool
    total_requests: int
    paused: bool
    maintenance: bool
    global_cap: int
    emergency_contact: str
    initialized_at: int | None = None

    @property
    def accepts_submissions(self) -> bool:
        return not (self.paused or self.maintenance)

    @property
    def accepts_transfers(self) -> bool:
        return not self.paused


@dataclass(frozen=True)
class ResourceTypeInfo:
    """Immutable snapshot of a resource pool."""

    type_id: int
    name: str
    total_supply: int
    available_quantity: int
    unit_price: int
    locked: bool
    priority_floor: int
    min_allocation: int
    max_allocation: int
    last_price_update: int
    registered_at: int

    @property
    def allocated_quantity(self) -> int:
        return self.total_supply - self.available_quantity


@dataclass(frozen=True)
class AllocationRequestInfo:
    """Immutable snapshot of an allocation request.

    ``status`` is the effective status at the height the snapshot was taken;
    ``stored_status`` is what the relation holds.
    """

    request_id: int
    requester: str
    resource_type_id: int
    amount: int
    status: RequestStatus
    stored_status: RequestStatus
    priority_snapshot: int
    submitted_at: int
    expires_at: int
    purpose: str = ""
    resolved_at: int | None = None
    resolved_by: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REQUEST_STATUSES


@dataclass(frozen=True)
class BalanceInfo:
    """Units of one resource type held by one actor."""

    actor: str
    resource_type_id: int
    units: int


@dataclass(frozen=True)
class AccessProfile:
    """Resolved access facts for an actor."""

    actor: str
    tier: int
    eligible: bool
