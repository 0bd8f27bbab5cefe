"""
ControlPlaneService -- global switches consulted as guards by every operation.

Responsibility:
    Owns the SystemState singleton: one-time initialization, parameter
    updates (global cap, emergency contact), maintenance mode and emergency
    pause.  Exposes the guard helpers the other services call before any
    component-specific check:

        require_initialized(operation)
        require_administrator(caller)
        require_accepting_submissions(caller)
        require_accepting_transfers(caller)

Architecture position:
    Kernel > Services.  Leaf service: other services depend on it, it
    depends on no other service.

Invariants enforced:
    - initialize() succeeds at most once.
    - Entering maintenance forces paused; exiting clears both.
    - resume() never clears paused while maintenance is on.

Failure modes:
    - UnauthorizedAccessError: caller is not the administrator (or emergency
      contact, for emergency_pause); system paused / in maintenance.
    - AlreadyInitializedError, SystemNotInitializedError.
    - InvalidResourceAmountError: global cap outside 1..2**63-1.
    - InvalidParameterError: empty emergency contact.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import (
    MAX_STORED_INTEGER,
    LedgerSettings,
    SystemStateInfo,
)
from allocation_kernel.domain.clock import Clock
from allocation_kernel.exceptions import (
    AlreadyInitializedError,
    InvalidParameterError,
    InvalidResourceAmountError,
    SystemNotInitializedError,
    UnauthorizedAccessError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.system_state import SINGLETON_KEY, SystemStateModel
from allocation_kernel.services.base import BaseService

logger = get_logger("services.control_plane")


class ControlPlaneService(BaseService):
    """Lifecycle and guards of the SystemState singleton."""

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._settings = settings

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def is_administrator(self, actor: str) -> bool:
        return actor == self._settings.administrator

    def require_administrator(self, caller: str) -> None:
        if not self.is_administrator(caller):
            raise UnauthorizedAccessError(caller, "administrator only")

    def require_initialized(self, operation: str) -> SystemStateModel:
        """Load the singleton row, failing if initialize() never ran."""
        state = self._load_state()
        if state is None or not state.initialized:
            raise SystemNotInitializedError(operation)
        return state

    def require_accepting_submissions(self, caller: str) -> SystemStateModel:
        state = self.require_initialized("submit allocation request")
        if state.maintenance:
            raise UnauthorizedAccessError(caller, "system in maintenance")
        if state.paused:
            raise UnauthorizedAccessError(caller, "system paused")
        return state

    def require_accepting_transfers(self, caller: str) -> SystemStateModel:
        state = self.require_initialized("transfer allocation")
        if state.paused:
            raise UnauthorizedAccessError(caller, "system paused")
        return state

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def initialize(self, caller: str) -> SystemStateInfo:
        """One-time setup of counters and flags."""
        self.require_administrator(caller)

        state = self._load_state()
        if state is not None and state.initialized:
            raise AlreadyInitializedError(state.initialized_at)

        now = self.clock.now()
        if state is None:
            state = SystemStateModel(singleton_key=SINGLETON_KEY)
            self.session.add(state)

        state.initialized = True
        state.total_requests = 0
        state.paused = False
        state.maintenance = False
        state.global_cap = self._settings.default_global_cap
        state.emergency_contact = self._settings.emergency_contact
        state.initialized_at = now
        self.session.flush()

        logger.info(
            "system_initialized",
            extra={
                "global_cap": state.global_cap,
                "emergency_contact": state.emergency_contact,
                "height": now,
            },
        )
        return state.to_dto()

    def update_parameters(
        self,
        caller: str,
        global_cap: int,
        emergency_contact: str,
    ) -> SystemStateInfo:
        state = self.require_initialized("update parameters")
        self.require_administrator(caller)

        if not 0 < global_cap <= MAX_STORED_INTEGER:
            raise InvalidResourceAmountError(
                global_cap, f"global cap must be within 1..{MAX_STORED_INTEGER}",
            )
        if not emergency_contact:
            raise InvalidParameterError(
                "emergency_contact", emergency_contact, "must be non-empty",
            )

        previous_cap = state.global_cap
        state.global_cap = global_cap
        state.emergency_contact = emergency_contact
        self.session.flush()

        logger.info(
            "parameters_updated",
            extra={
                "previous_global_cap": previous_cap,
                "global_cap": global_cap,
                "emergency_contact": emergency_contact,
            },
        )
        return state.to_dto()

    def enter_maintenance(self, caller: str) -> SystemStateInfo:
        state = self.require_initialized("enter maintenance")
        self.require_administrator(caller)
        state.maintenance = True
        state.paused = True
        self.session.flush()
        logger.warning("maintenance_entered", extra={"height": self.clock.now()})
        return state.to_dto()

    def exit_maintenance(self, caller: str) -> SystemStateInfo:
        state = self.require_initialized("exit maintenance")
        self.require_administrator(caller)
        state.maintenance = False
        state.paused = False
        self.session.flush()
        logger.info("maintenance_exited", extra={"height": self.clock.now()})
        return state.to_dto()

    def emergency_pause(self, caller: str) -> SystemStateInfo:
        """Pause submissions and transfers; administrator or emergency contact."""
        state = self.require_initialized("emergency pause")
        if not (self.is_administrator(caller) or caller == state.emergency_contact):
            raise UnauthorizedAccessError(caller, "administrator or emergency contact only")
        state.paused = True
        self.session.flush()
        logger.warning("emergency_pause_engaged", extra={"height": self.clock.now()})
        return state.to_dto()

    def resume(self, caller: str) -> SystemStateInfo:
        state = self.require_initialized("resume")
        self.require_administrator(caller)
        if state.maintenance:
            raise UnauthorizedAccessError(caller, "system in maintenance; exit maintenance instead")
        state.paused = False
        self.session.flush()
        logger.info("system_resumed", extra={"height": self.clock.now()})
        return state.to_dto()

    def allocate_request_id(self) -> int:
        """Increment the request counter and return the new id."""
        state = self.require_initialized("allocate request id")
        state.total_requests += 1
        self.session.flush()
        return state.total_requests

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_state(self) -> SystemStateModel | None:
        return self.session.execute(
            select(SystemStateModel)
            .where(SystemStateModel.singleton_key == SINGLETON_KEY)
            .with_for_update()
        ).scalar_one_or_none()
