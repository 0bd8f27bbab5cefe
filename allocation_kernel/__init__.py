"""
Allocation Kernel

A ledger of allocatable resources with:
- Typed resource pools (supply, price, lock, priority floor)
- A request/approval workflow with lazy expiry
- Per-actor, per-type balances with transfer and return
- Atomic, all-or-nothing operations
"""

__version__ = "0.1.0"
