"""
BaseService -- shared constructor for the ledger's mutating components.

Each component (pool registry, allocation engine, balance ledger, access
service, control plane) writes through the session it is handed and calls
``session.flush()`` so later steps of the same operation see its rows.
Only AllocationLedgerService commits or rolls back, which keeps an approval's
pool debit, balance credit and status change in one transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session

from allocation_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """Session plus the logical clock used to stamp heights."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
