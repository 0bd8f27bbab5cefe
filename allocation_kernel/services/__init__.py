"""Services for the allocation kernel (write side)."""

from allocation_kernel.services.access_service import AccessService
from allocation_kernel.services.allocation_engine import AllocationEngineService
from allocation_kernel.services.allocation_ledger import AllocationLedgerService
from allocation_kernel.services.balance_ledger import BalanceLedgerService
from allocation_kernel.services.control_plane import ControlPlaneService
from allocation_kernel.services.pool_registry import PoolRegistryService

__all__ = [
    "AccessService",
    "AllocationEngineService",
    "AllocationLedgerService",
    "BalanceLedgerService",
    "ControlPlaneService",
    "PoolRegistryService",
]
