"""
Module: allocation_kernel.models.allocation_request
Responsibility: ORM persistence for allocation requests.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Status values limited to the four lifecycle states (DB check
      constraint); transition rules are enforced by AllocationEngineService
      against REQUEST_TRANSITIONS.
    - request_id is unique and assigned from the SystemState counter.
    - amount > 0.

Audit relevance:
    requester, priority_snapshot, submitted_at, resolved_at and resolved_by
    together record who asked for what, at which tier, and who decided.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base

if TYPE_CHECKING:
    from allocation_kernel.domain.allocation import AllocationRequestInfo


class AllocationRequestModel(Base):
    """Persistent allocation request."""

    __tablename__ = "allocation_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'EXPIRED')",
            name="ck_allocation_requests_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_allocation_requests_amount_positive"),
        Index("ix_allocation_requests_requester", "requester", "status"),
        Index("ix_allocation_requests_expiry", "status", "expires_at"),
    )

    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    requester: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_type_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("resource_types.type_id"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    priority_snapshot: Mapped[int] = mapped_column(nullable=False)
    submitted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    purpose: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    resolved_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AllocationRequest {self.request_id} {self.requester} "
            f"type={self.resource_type_id} amount={self.amount} "
            f"status={self.status}>"
        )

    def to_dto(self, now: int) -> AllocationRequestInfo:
        """Convert ORM model to frozen domain DTO as observed at height ``now``."""
        from allocation_kernel.domain.allocation import (
            AllocationRequestInfo,
            RequestStatus,
            effective_status,
        )

        stored = RequestStatus(self.status)
        return AllocationRequestInfo(
            request_id=self.request_id,
            requester=self.requester,
            resource_type_id=self.resource_type_id,
            amount=self.amount,
            status=effective_status(stored, self.expires_at, now),
            stored_status=stored,
            priority_snapshot=self.priority_snapshot,
            submitted_at=self.submitted_at,
            expires_at=self.expires_at,
            purpose=self.purpose,
            resolved_at=self.resolved_at,
            resolved_by=self.resolved_by,
        )
