"""
AllocationLedgerService -- the public operation surface of the ledger.

Responsibility:
    Single entry point for callers (wallets, agents, admin consoles).  Every
    mutating operation takes the caller identity first, runs the component
    services against one shared session, and owns the transaction boundary.
    Read operations delegate to the selectors and never write.

Architecture position:
    Kernel > Services -- imperative shell, owns transaction boundaries.
    Sits above ControlPlaneService, AccessService, PoolRegistryService,
    BalanceLedgerService and AllocationEngineService.

Operation flow:
    <operation>(caller, ...)
      1. Bind LogContext (correlation_id, actor_id, operation, ...)
      2. Log <operation>_started
      3. Run the component service; services only flush
      4. Commit on success, rollback on any exception (auto_commit=True)
      5. Log <operation>_completed with duration_ms, or
         <operation>_failed with error_code, then re-raise

Invariants enforced:
    Atomic operation -- a failed operation leaves no partial writes: the
    request counter, pool quantities, balances and request rows are rolled
    back together.

Failure modes:
    Every AllocationKernelError raised by a component service propagates
    unchanged after rollback.  Unexpected exceptions are logged at ERROR
    with the traceback and also re-raised.
"""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar
from uuid import uuid4 as _uuid4

from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import (
    AccessProfile,
    AllocationRequestInfo,
    BalanceInfo,
    LedgerSettings,
    RequestStatus,
    ResourceTypeInfo,
    SystemStateInfo,
)
from allocation_kernel.domain.clock import Clock, SystemClock
from allocation_kernel.domain.roles import Role
from allocation_kernel.exceptions import AllocationKernelError
from allocation_kernel.logging_config import LogContext, get_logger
from allocation_kernel.selectors.access_selector import AccessResolver
from allocation_kernel.selectors.allocation_selector import AllocationSelector
from allocation_kernel.services.access_service import AccessService
from allocation_kernel.services.allocation_engine import AllocationEngineService
from allocation_kernel.services.balance_ledger import BalanceLedgerService
from allocation_kernel.services.control_plane import ControlPlaneService
from allocation_kernel.services.pool_registry import PoolRegistryService

logger = get_logger("services.allocation_ledger")

T = TypeVar("T")


class AllocationLedgerService:
    """
    Resource allocation ledger.

    Contract:
        Mutating methods commit on success and roll back on failure when
        ``auto_commit`` is True.  With ``auto_commit=False`` the caller owns
        the transaction and must roll back after a failure itself.

    Usage:
        settings = LedgerSettings(administrator="admin")
        ledger = AllocationLedgerService(session, settings, clock)
        ledger.initialize("admin")
        ledger.register_resource_type("admin", 1, "gpu-hours", 100, 10, 1, 50, 1)
        request = ledger.submit_request("alice", 1, 30)
        ledger.approve_request("admin", request.request_id)
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._settings = settings
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        self._control = ControlPlaneService(session, settings, self._clock)
        self._access = AccessService(session, self._control, self._clock)
        self._pools = PoolRegistryService(session, settings, self._control, self._clock)
        self._balances = BalanceLedgerService(session, self._control, self._pools, self._clock)
        self._engine = AllocationEngineService(
            session, settings, self._control, self._pools, self._balances, self._clock,
        )

        self._selector = AllocationSelector(session)
        self._resolver = AccessResolver(session)

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock

    # =========================================================================
    # Control plane
    # =========================================================================

    def initialize(self, caller: str) -> SystemStateInfo:
        return self._run("initialize", caller, lambda: self._control.initialize(caller))

    def update_parameters(
        self,
        caller: str,
        global_cap: int,
        emergency_contact: str,
    ) -> SystemStateInfo:
        return self._run(
            "update_parameters", caller,
            lambda: self._control.update_parameters(caller, global_cap, emergency_contact),
            global_cap=global_cap,
        )

    def enter_maintenance(self, caller: str) -> SystemStateInfo:
        return self._run(
            "enter_maintenance", caller, lambda: self._control.enter_maintenance(caller),
        )

    def exit_maintenance(self, caller: str) -> SystemStateInfo:
        return self._run(
            "exit_maintenance", caller, lambda: self._control.exit_maintenance(caller),
        )

    def emergency_pause(self, caller: str) -> SystemStateInfo:
        return self._run(
            "emergency_pause", caller, lambda: self._control.emergency_pause(caller),
        )

    def resume(self, caller: str) -> SystemStateInfo:
        return self._run("resume", caller, lambda: self._control.resume(caller))

    # =========================================================================
    # Access
    # =========================================================================

    def assign_role(self, caller: str, actor: str, role: Role | str) -> AccessProfile:
        return self._run(
            "assign_role", caller,
            lambda: self._access.assign_role(caller, actor, role),
            target_actor=actor,
        )

    def set_blacklisted(self, caller: str, actor: str, flag: bool = True) -> AccessProfile:
        return self._run(
            "set_blacklisted", caller,
            lambda: self._access.set_blacklisted(caller, actor, flag),
            target_actor=actor,
            blacklisted=flag,
        )

    # =========================================================================
    # Resource pools
    # =========================================================================

    def register_resource_type(
        self,
        caller: str,
        type_id: int,
        name: str,
        total_supply: int,
        unit_price: int,
        min_allocation: int,
        max_allocation: int,
        priority_floor: int,
    ) -> ResourceTypeInfo:
        return self._run(
            "register_resource_type", caller,
            lambda: self._pools.register(
                caller, type_id, name, total_supply, unit_price,
                min_allocation, max_allocation, priority_floor,
            ),
            resource_type_id=type_id,
        )

    def update_price(self, caller: str, type_id: int, new_price: int) -> ResourceTypeInfo:
        return self._run(
            "update_price", caller,
            lambda: self._pools.update_price(caller, type_id, new_price),
            resource_type_id=type_id,
        )

    def lock_resource_type(self, caller: str, type_id: int) -> ResourceTypeInfo:
        return self._run(
            "lock_resource_type", caller,
            lambda: self._pools.lock(caller, type_id),
            resource_type_id=type_id,
        )

    def unlock_resource_type(self, caller: str, type_id: int) -> ResourceTypeInfo:
        return self._run(
            "unlock_resource_type", caller,
            lambda: self._pools.unlock(caller, type_id),
            resource_type_id=type_id,
        )

    # =========================================================================
    # Allocation requests
    # =========================================================================

    def submit_request(
        self,
        caller: str,
        type_id: int,
        amount: int,
        purpose: str = "",
    ) -> AllocationRequestInfo:
        return self._run(
            "submit_request", caller,
            lambda: self._engine.submit(caller, type_id, amount, purpose),
            resource_type_id=type_id,
            amount=amount,
        )

    def approve_request(self, caller: str, request_id: int) -> AllocationRequestInfo:
        return self._run(
            "approve_request", caller,
            lambda: self._engine.approve(caller, request_id),
            request_id=request_id,
        )

    def reject_request(self, caller: str, request_id: int) -> AllocationRequestInfo:
        return self._run(
            "reject_request", caller,
            lambda: self._engine.reject(caller, request_id),
            request_id=request_id,
        )

    def expire_stale_requests(self, caller: str) -> list[int]:
        return self._run(
            "expire_stale_requests", caller,
            lambda: self._engine.expire_stale_requests(caller),
        )

    # =========================================================================
    # Balances
    # =========================================================================

    def transfer(
        self,
        caller: str,
        recipient: str,
        type_id: int,
        amount: int,
    ) -> tuple[BalanceInfo, BalanceInfo]:
        return self._run(
            "transfer", caller,
            lambda: self._balances.transfer(caller, recipient, type_id, amount),
            resource_type_id=type_id,
            recipient=recipient,
            amount=amount,
        )

    def return_allocated(self, caller: str, type_id: int, amount: int) -> BalanceInfo:
        return self._run(
            "return_allocated", caller,
            lambda: self._balances.return_allocated(caller, type_id, amount),
            resource_type_id=type_id,
            amount=amount,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_system_state(self) -> SystemStateInfo | None:
        return self._selector.get_system_state()

    def get_resource_type(self, type_id: int) -> ResourceTypeInfo:
        return self._selector.get_resource_type(type_id)

    def list_resource_types(self) -> list[ResourceTypeInfo]:
        return self._selector.list_resource_types()

    def get_price_history(self, type_id: int) -> tuple[int, ...]:
        return self._selector.get_price_history(type_id)

    def get_request(self, request_id: int) -> AllocationRequestInfo:
        """Request as observed now; PENDING past expiry reads as EXPIRED."""
        return self._selector.get_request(request_id, self._clock.now())

    def list_requests(
        self,
        requester: str | None = None,
        status: RequestStatus | None = None,
    ) -> list[AllocationRequestInfo]:
        return self._selector.list_requests(self._clock.now(), requester, status)

    def is_request_expired(self, request_id: int) -> bool:
        return self.get_request(request_id).status == RequestStatus.EXPIRED

    def get_balance(self, actor: str, type_id: int) -> int:
        return self._selector.get_balance(actor, type_id)

    def total_balance(self, actor: str) -> int:
        return self._selector.total_balance(actor)

    def balances_for(self, actor: str) -> list[BalanceInfo]:
        return self._selector.balances_for(actor)

    def outstanding(self, type_id: int) -> int:
        return self._selector.outstanding(type_id)

    def resolve_tier(self, actor: str) -> int:
        return self._resolver.resolve_tier(actor)

    def is_eligible(self, actor: str) -> bool:
        return self._resolver.is_eligible(actor)

    def access_profile(self, actor: str) -> AccessProfile:
        return self._resolver.profile(actor)

    # =========================================================================
    # Internal
    # =========================================================================

    def _run(
        self,
        operation: str,
        caller: str,
        action: Callable[[], T],
        *,
        request_id: int | None = None,
        resource_type_id: int | None = None,
        **log_extra: Any,
    ) -> T:
        correlation_id = str(_uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=caller,
            operation=operation,
            request_id=str(request_id) if request_id is not None else None,
            resource_type_id=str(resource_type_id) if resource_type_id is not None else None,
            height=str(self._clock.now()),
        ):
            logger.info(f"{operation}_started", extra=log_extra)
            t0 = time.monotonic()

            try:
                result = action()
                if self._auto_commit:
                    self._session.commit()
            except AllocationKernelError as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    f"{operation}_failed",
                    extra={
                        "duration_ms": duration_ms,
                        "error_code": exc.code,
                        "error": str(exc),
                    },
                )
                raise
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    f"{operation}_failed",
                    extra={"duration_ms": duration_ms, "error_code": None},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(f"{operation}_completed", extra={"duration_ms": duration_ms})
            return result
