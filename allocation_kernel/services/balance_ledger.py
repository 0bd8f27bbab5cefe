"""
BalanceLedgerService -- allocated units held by actors.

Responsibility:
    Credits and debits of (actor, resource type) balances, peer transfers,
    and returning units to the pool.

Architecture position:
    Kernel > Services.  Depends on ControlPlaneService (guards),
    AccessResolver (eligibility) and PoolRegistryService (pool credit on
    return).

Invariants enforced:
    - Non-negative balance: a debit never exceeds the current balance.
    - Transfer is zero-sum: the sender's debit and the recipient's credit
      are flushed in the same transaction.
    - Return conserves: the balance debit equals the pool credit.

Failure modes:
    - UnauthorizedAccessError: system paused, or sender blacklisted.
    - InvalidTransferDestinationError: recipient blacklisted or equal to the
      sender.
    - InvalidResourceAmountError: non-positive amount, or above the global cap.
    - ResourceTypeNotFoundError, ResourceLockedError.
    - InsufficientResourceBalanceError: amount above the holder's balance.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import BalanceInfo
from allocation_kernel.domain.clock import Clock
from allocation_kernel.exceptions import (
    InsufficientResourceBalanceError,
    InvalidResourceAmountError,
    InvalidTransferDestinationError,
    ResourceLockedError,
    UnauthorizedAccessError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.balance import BalanceModel
from allocation_kernel.selectors.access_selector import AccessResolver
from allocation_kernel.services.base import BaseService
from allocation_kernel.services.control_plane import ControlPlaneService
from allocation_kernel.services.pool_registry import PoolRegistryService

logger = get_logger("services.balance_ledger")


class BalanceLedgerService(BaseService):
    """Owns the balances relation."""

    def __init__(
        self,
        session: Session,
        control_plane: ControlPlaneService,
        pool_registry: PoolRegistryService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock or control_plane.clock)
        self._control = control_plane
        self._pools = pool_registry
        self._access = AccessResolver(session)

    # ------------------------------------------------------------------
    # Internal movements
    # ------------------------------------------------------------------

    def credit(self, actor: str, type_id: int, amount: int) -> BalanceInfo:
        if amount <= 0:
            raise InvalidResourceAmountError(amount, "credit must be positive")
        row = self._row(actor, type_id, create=True)
        row.units += amount
        self.session.flush()
        return BalanceInfo(actor=actor, resource_type_id=type_id, units=row.units)

    def debit(self, actor: str, type_id: int, amount: int) -> BalanceInfo:
        if amount <= 0:
            raise InvalidResourceAmountError(amount, "debit must be positive")
        row = self._row(actor, type_id)
        held = row.units if row is not None else 0
        if amount > held:
            raise InsufficientResourceBalanceError(amount, held, f"balance of {actor}")
        row.units -= amount
        self.session.flush()
        return BalanceInfo(actor=actor, resource_type_id=type_id, units=row.units)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def transfer(
        self,
        caller: str,
        recipient: str,
        type_id: int,
        amount: int,
    ) -> tuple[BalanceInfo, BalanceInfo]:
        """
        Move ``amount`` units of ``type_id`` from ``caller`` to ``recipient``.

        Returns:
            The sender's and the recipient's balances after the move.
        """
        state = self._control.require_accepting_transfers(caller)

        if not self._access.is_eligible(caller):
            raise UnauthorizedAccessError(caller, "actor is blacklisted")
        if not self._access.is_eligible(recipient):
            raise InvalidTransferDestinationError(recipient, "recipient is blacklisted")
        if recipient == caller:
            raise InvalidTransferDestinationError(recipient, "cannot transfer to self")
        if amount <= 0 or amount > state.global_cap:
            raise InvalidResourceAmountError(
                amount, f"transfer amount must be within 1..{state.global_cap}",
            )

        pool = self._pools.get_model(type_id)
        if pool.locked:
            raise ResourceLockedError(type_id)

        sender = self.debit(caller, type_id, amount)
        receiver = self.credit(recipient, type_id, amount)

        logger.info(
            "allocation_transferred",
            extra={
                "sender": caller,
                "recipient": recipient,
                "resource_type_id": type_id,
                "amount": amount,
                "sender_units": sender.units,
                "recipient_units": receiver.units,
            },
        )
        return sender, receiver

    def return_allocated(self, caller: str, type_id: int, amount: int) -> BalanceInfo:
        """Give ``amount`` units of ``type_id`` back to the pool."""
        self._control.require_initialized("return allocation")
        if amount <= 0:
            raise InvalidResourceAmountError(amount, "return amount must be positive")
        self._pools.get_model(type_id)

        remaining = self.debit(caller, type_id, amount)
        pool = self._pools.credit_available(type_id, amount)

        logger.info(
            "allocation_returned",
            extra={
                "holder": caller,
                "resource_type_id": type_id,
                "amount": amount,
                "remaining_units": remaining.units,
                "available_quantity": pool.available_quantity,
            },
        )
        return remaining

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _row(self, actor: str, type_id: int, create: bool = False) -> BalanceModel | None:
        row = self.session.execute(
            select(BalanceModel)
            .where(
                BalanceModel.actor == actor,
                BalanceModel.resource_type_id == type_id,
            )
            .with_for_update()
        ).scalar_one_or_none()
        if row is None and create:
            row = BalanceModel(actor=actor, resource_type_id=type_id, units=0)
            self.session.add(row)
        return row
