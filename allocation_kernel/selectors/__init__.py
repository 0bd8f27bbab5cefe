"""Selectors for the allocation kernel (read side)."""

from allocation_kernel.selectors.access_selector import AccessResolver
from allocation_kernel.selectors.allocation_selector import AllocationSelector

__all__ = [
    "AccessResolver",
    "AllocationSelector",
]
