"""
Module: allocation_kernel.models.system_state
Responsibility: ORM persistence for the control-plane singleton.

Invariants enforced:
    - At most one row (unique ``singleton_key``).
    - total_requests only ever increases; it is the sole source of request
      ids.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base

if TYPE_CHECKING:
    from allocation_kernel.domain.allocation import SystemStateInfo

SINGLETON_KEY = "system"


class SystemStateModel(Base):
    """Global switches and counters of a ledger instance."""

    __tablename__ = "system_state"

    __table_args__ = (
        CheckConstraint("total_requests >= 0", name="ck_system_state_requests_non_negative"),
        CheckConstraint("global_cap > 0", name="ck_system_state_cap_positive"),
    )

    singleton_key: Mapped[str] = mapped_column(
        String(16), nullable=False, unique=True, default=SINGLETON_KEY,
    )
    initialized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_requests: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    maintenance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    global_cap: Mapped[int] = mapped_column(BigInteger, nullable=False)
    emergency_contact: Mapped[str] = mapped_column(String(128), nullable=False)
    initialized_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<SystemState requests={self.total_requests} paused={self.paused} "
            f"maintenance={self.maintenance} cap={self.global_cap}>"
        )

    def to_dto(self) -> SystemStateInfo:
        from allocation_kernel.domain.allocation import SystemStateInfo

        return SystemStateInfo(
            initialized=self.initialized,
            total_requests=self.total_requests,
            paused=self.paused,
            maintenance=self.maintenance,
            global_cap=self.global_cap,
            emergency_contact=self.emergency_contact,
            initialized_at=self.initialized_at,
        )
