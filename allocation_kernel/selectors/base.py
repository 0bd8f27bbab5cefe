"""
Module: allocation_kernel.selectors.base
Responsibility: Common root for the ledger's read side.  A selector answers
    questions about pools, requests, balances and access state; it never
    changes them.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - No writes: no session.add(), delete(), flush() or commit().
    - Results are domain dataclasses or plain ints/bools, never ORM rows.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Holds the caller's session; the caller owns its transaction."""

    def __init__(self, session: Session):
        self.session = session
