"""
Module: allocation_kernel.models.access
Responsibility: ORM persistence for role assignments and the blacklist.
    Both relations are sparse: an absent row means the default (USER role,
    eligible).
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base


class RoleAssignmentModel(Base):
    """Role label held by an actor."""

    __tablename__ = "role_assignments"

    __table_args__ = (
        CheckConstraint(
            "role IN ('USER', 'VERIFIED', 'BUSINESS', 'PREMIUM', 'ADMIN')",
            name="ck_role_assignments_valid_role",
        ),
    )

    actor: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="USER")
    assigned_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    assigned_by: Mapped[str] = mapped_column(String(128), nullable=False)

    def __repr__(self) -> str:
        return f"<RoleAssignment {self.actor} role={self.role}>"


class BlacklistEntryModel(Base):
    """Eligibility flag for an actor."""

    __tablename__ = "blacklist_entries"

    actor: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    blacklisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_by: Mapped[str] = mapped_column(String(128), nullable=False)

    def __repr__(self) -> str:
        return f"<BlacklistEntry {self.actor} blacklisted={self.blacklisted}>"
