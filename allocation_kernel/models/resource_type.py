"""
Module: allocation_kernel.models.resource_type
Responsibility: ORM persistence for resource pools and their bounded price
    history.
Architecture position: Kernel > Models.  May import from db/base.py only
    (domain DTOs are imported lazily inside to_dto()).

Invariants enforced:
    - 0 <= available_quantity <= total_supply (DB check constraints, backed
      by PoolRegistryService validation).
    - min_allocation <= max_allocation.
    - priority_floor within 1..5.
    - At most price_history_capacity history rows per resource type
      (PoolRegistryService evicts the oldest row on every push).

Failure modes:
    - IntegrityError on duplicate type_id.
    - IntegrityError if a bug ever tries to flush a pool outside its bounds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base

if TYPE_CHECKING:
    from allocation_kernel.domain.allocation import ResourceTypeInfo


class ResourceTypeModel(Base):
    """Persistent resource pool.

    Contract:
        type_id is the caller-facing identifier; the integer primary key is a
        surrogate.  Rows are never deleted.
    """

    __tablename__ = "resource_types"

    __table_args__ = (
        CheckConstraint(
            "available_quantity >= 0",
            name="ck_resource_types_available_non_negative",
        ),
        CheckConstraint(
            "available_quantity <= total_supply",
            name="ck_resource_types_available_within_supply",
        ),
        CheckConstraint(
            "min_allocation <= max_allocation",
            name="ck_resource_types_allocation_range",
        ),
        CheckConstraint(
            "priority_floor BETWEEN 1 AND 5",
            name="ck_resource_types_priority_floor",
        ),
    )

    type_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    total_supply: Mapped[int] = mapped_column(BigInteger, nullable=False)
    available_quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority_floor: Mapped[int] = mapped_column(nullable=False, default=1)
    min_allocation: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_allocation: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_price_update: Mapped[int] = mapped_column(BigInteger, nullable=False)
    registered_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ResourceType {self.type_id} {self.name!r} "
            f"available={self.available_quantity}/{self.total_supply}"
            f"{' locked' if self.locked else ''}>"
        )

    def to_dto(self) -> ResourceTypeInfo:
        """Convert ORM model to frozen domain DTO."""
        from allocation_kernel.domain.allocation import ResourceTypeInfo

        return ResourceTypeInfo(
            type_id=self.type_id,
            name=self.name,
            total_supply=self.total_supply,
            available_quantity=self.available_quantity,
            unit_price=self.unit_price,
            locked=self.locked,
            priority_floor=self.priority_floor,
            min_allocation=self.min_allocation,
            max_allocation=self.max_allocation,
            last_price_update=self.last_price_update,
            registered_at=self.registered_at,
        )


class PriceHistoryEntryModel(Base):
    """One retained price of a resource type.

    ``sequence`` increases per resource type; the highest sequence is the
    most recent price.
    """

    __tablename__ = "price_history_entries"

    __table_args__ = (
        UniqueConstraint(
            "resource_type_id", "sequence",
            name="uq_price_history_type_sequence",
        ),
        Index("ix_price_history_type", "resource_type_id"),
        CheckConstraint("price > 0", name="ck_price_history_price_positive"),
    )

    resource_type_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("resource_types.type_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    recorded_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<PriceHistoryEntry type={self.resource_type_id} "
            f"seq={self.sequence} price={self.price}>"
        )
