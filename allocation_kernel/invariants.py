"""
Kernel Invariants Contract.

These invariants are structural law for the allocation ledger. No
configuration value or administrative operation may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across PoolRegistryService, BalanceLedgerService,
AllocationEngineService, the request lifecycle table in
``domain/allocation.py``, and the DB check constraints on the models.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    POOL_BOUNDS = "pool_bounds"
    """0 <= available_quantity <= total_supply for every resource type.
    Enforced by PoolRegistryService and a DB check constraint."""

    POOL_CONSERVATION = "pool_conservation"
    """available_quantity + sum of balances of a type == total_supply.
    Approval, transfer and return move units without creating or
    destroying them."""

    NON_NEGATIVE_BALANCE = "non_negative_balance"
    """No debit exceeds the pre-operation balance. Enforced by
    BalanceLedgerService.debit and a DB check constraint."""

    ONE_WAY_LIFECYCLE = "one_way_lifecycle"
    """Request status moves only PENDING -> {APPROVED, REJECTED, EXPIRED}.
    Enforced by REQUEST_TRANSITIONS."""

    DENSE_REQUEST_IDS = "dense_request_ids"
    """Request ids come from the SystemState counter only; a failed
    submission never consumes an id."""

    ATOMIC_OPERATION = "atomic_operation"
    """Every public operation commits fully or rolls back fully.
    Enforced by AllocationLedgerService."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "allocation_config",
)
