"""
Service layer for role assignments and the blacklist.

Both relations are sparse: writing the default (USER role, not
blacklisted) keeps the row but the resolver treats it the same as absence.
Only the administrator may write either relation.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import AccessProfile
from allocation_kernel.domain.clock import Clock
from allocation_kernel.domain.roles import Role
from allocation_kernel.exceptions import UnauthorizedAccessError
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.access import BlacklistEntryModel, RoleAssignmentModel
from allocation_kernel.selectors.access_selector import AccessResolver
from allocation_kernel.services.base import BaseService
from allocation_kernel.services.control_plane import ControlPlaneService

logger = get_logger("services.access")


class AccessService(BaseService):
    """Administrator writes to the role and blacklist relations."""

    def __init__(
        self,
        session: Session,
        control_plane: ControlPlaneService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock or control_plane.clock)
        self._control = control_plane
        self.resolver = AccessResolver(session)

    def assign_role(self, caller: str, actor: str, role: Role | str) -> AccessProfile:
        """
        Store ``role`` for ``actor``.

        Raises:
            UnauthorizedAccessError: caller is not the administrator.
            ValueError: ``role`` is not a known role label.
        """
        self._control.require_initialized("assign role")
        self._control.require_administrator(caller)
        role = Role(role)

        assignment = self.session.execute(
            select(RoleAssignmentModel).where(RoleAssignmentModel.actor == actor)
        ).scalar_one_or_none()
        previous = Role(assignment.role) if assignment is not None else None
        if assignment is None:
            assignment = RoleAssignmentModel(actor=actor)
            self.session.add(assignment)
        assignment.role = role.value
        assignment.assigned_at = self.clock.now()
        assignment.assigned_by = caller
        self.session.flush()

        logger.info(
            "role_assigned",
            extra={
                "actor": actor,
                "role": role.value,
                "previous_role": previous.value if previous else None,
                "tier": role.tier,
            },
        )
        return self.resolver.profile(actor)

    def set_blacklisted(self, caller: str, actor: str, flag: bool) -> AccessProfile:
        """
        Set or clear the blacklist flag of ``actor``.

        Raises:
            UnauthorizedAccessError: caller is not the administrator, or the
                target is the administrator.
        """
        self._control.require_initialized("set blacklist")
        self._control.require_administrator(caller)
        if flag and self._control.is_administrator(actor):
            raise UnauthorizedAccessError(caller, "administrator cannot be blacklisted")

        entry = self.session.execute(
            select(BlacklistEntryModel).where(BlacklistEntryModel.actor == actor)
        ).scalar_one_or_none()
        if entry is None:
            entry = BlacklistEntryModel(actor=actor)
            self.session.add(entry)
        entry.blacklisted = flag
        entry.updated_at = self.clock.now()
        entry.updated_by = caller
        self.session.flush()

        if flag:
            logger.warning("actor_blacklisted", extra={"actor": actor})
        else:
            logger.info("actor_reinstated", extra={"actor": actor})
        return self.resolver.profile(actor)
