"""ORM models for the allocation kernel."""

from allocation_kernel.models.access import BlacklistEntryModel, RoleAssignmentModel
from allocation_kernel.models.allocation_request import AllocationRequestModel
from allocation_kernel.models.balance import BalanceModel
from allocation_kernel.models.resource_type import (
    PriceHistoryEntryModel,
    ResourceTypeModel,
)
from allocation_kernel.models.system_state import SystemStateModel

__all__ = [
    "AllocationRequestModel",
    "BalanceModel",
    "BlacklistEntryModel",
    "PriceHistoryEntryModel",
    "ResourceTypeModel",
    "RoleAssignmentModel",
    "SystemStateModel",
]
