"""
Module: allocation_kernel.models.balance
Responsibility: ORM persistence for allocated-unit balances, keyed by
    (actor, resource type).

Invariants enforced:
    - units >= 0 (DB check constraint, backed by BalanceLedgerService.debit).
    - One row per (actor, resource_type_id).
"""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base


class BalanceModel(Base):
    """Units of one resource type held by one actor."""

    __tablename__ = "balances"

    __table_args__ = (
        UniqueConstraint("actor", "resource_type_id", name="uq_balances_actor_type"),
        CheckConstraint("units >= 0", name="ck_balances_units_non_negative"),
    )

    actor: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_type_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("resource_types.type_id"),
        nullable=False,
    )
    units: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Balance {self.actor} type={self.resource_type_id} units={self.units}>"
