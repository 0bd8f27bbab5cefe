"""
AccessResolver -- maps an actor to a priority tier and an eligibility verdict.

Responsibility:
    Pure function of the stored role/blacklist relations.  Absent rows mean
    the defaults (USER tier, eligible); there is no failure mode.

Architecture position:
    Kernel > Selectors -- read-only.  Consulted by every mutating service
    after the control-plane guards.

Non-goals:
    Does not decide whether a tier is *sufficient*.  Submission compares the
    tier against the resource's priority floor; transfer only needs both
    parties eligible.
"""

from sqlalchemy import select

from allocation_kernel.domain.allocation import AccessProfile
from allocation_kernel.domain.roles import Role, tier_for
from allocation_kernel.models.access import BlacklistEntryModel, RoleAssignmentModel
from allocation_kernel.selectors.base import BaseSelector


class AccessResolver(BaseSelector):
    """Read-side resolver for roles, tiers and eligibility."""

    def role_of(self, actor: str) -> Role:
        """Stored role of ``actor``, or USER when none is stored."""
        assignment = self.session.execute(
            select(RoleAssignmentModel).where(RoleAssignmentModel.actor == actor)
        ).scalar_one_or_none()
        if assignment is None:
            return Role.USER
        return Role(assignment.role)

    def resolve_tier(self, actor: str) -> int:
        """Tier 1..5 of ``actor``."""
        return tier_for(self.role_of(actor))

    def is_blacklisted(self, actor: str) -> bool:
        entry = self.session.execute(
            select(BlacklistEntryModel).where(BlacklistEntryModel.actor == actor)
        ).scalar_one_or_none()
        return entry is not None and entry.blacklisted

    def is_eligible(self, actor: str) -> bool:
        """True iff ``actor`` is not blacklisted."""
        return not self.is_blacklisted(actor)

    def profile(self, actor: str) -> AccessProfile:
        return AccessProfile(
            actor=actor,
            tier=self.resolve_tier(actor),
            eligible=self.is_eligible(actor),
        )
