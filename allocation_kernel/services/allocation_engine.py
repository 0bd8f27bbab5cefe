"""
AllocationEngineService -- submission and resolution of allocation requests.

Responsibility:
    Validates and records new allocation requests, and resolves PENDING
    requests by approval (pool debit + balance credit) or rejection.  Also
    offers an administrator sweep that persists the EXPIRED status lazily
    implied by the clock.

Architecture position:
    Kernel > Services.  Depends on ControlPlaneService, AccessResolver,
    PoolRegistryService and BalanceLedgerService.  Does not commit.

Invariants enforced:
    - One-way lifecycle: every status write goes through
      ``_transition()``, which consults ``REQUEST_TRANSITIONS``.
    - Dense request ids: the SystemState counter is only incremented after
      every submission guard has passed, so a failed submit leaves no gap.
    - Priority snapshot: the requester's tier is captured at submission.
    - Approval conserves units: the pool debit equals the balance credit.

Failure modes:
    Submission guards, in order:
        SystemNotInitializedError
        UnauthorizedAccessError      (paused / maintenance)
        UnauthorizedAccessError      (requester blacklisted)
        ResourceTypeNotFoundError
        ResourceLockedError
        InvalidResourceAmountError   (zero, negative or above global cap)
        InvalidResourceAmountError   (below min_allocation)
        ResourceLimitExceededError   (above max_allocation)
        InsufficientResourceBalanceError (above pool availability)
        UnauthorizedAccessError      (tier below priority floor)
        InvalidRequestPurposeError
    Resolution:
        UnauthorizedAccessError / InvalidRequestTransitionError,
        RequestNotFoundError, ExpiredRequestError,
        InsufficientResourceBalanceError (approve re-validates availability).

Audit relevance:
    Each resolution records ``resolved_at`` and ``resolved_by`` on the row
    and emits a structured log event carrying the request id.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import (
    MAX_PURPOSE_LENGTH,
    AllocationRequestInfo,
    LedgerSettings,
    RequestStatus,
    can_transition,
    is_expired,
    is_storable,
)
from allocation_kernel.domain.clock import Clock
from allocation_kernel.exceptions import (
    ExpiredRequestError,
    InsufficientResourceBalanceError,
    InvalidRequestPurposeError,
    InvalidRequestTransitionError,
    InvalidResourceAmountError,
    RequestNotFoundError,
    ResourceLimitExceededError,
    ResourceLockedError,
    UnauthorizedAccessError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation_request import AllocationRequestModel
from allocation_kernel.selectors.access_selector import AccessResolver
from allocation_kernel.services.balance_ledger import BalanceLedgerService
from allocation_kernel.services.base import BaseService
from allocation_kernel.services.control_plane import ControlPlaneService
from allocation_kernel.services.pool_registry import PoolRegistryService

logger = get_logger("services.allocation_engine")


class AllocationEngineService(BaseService):
    """Owns the allocation_requests relation."""

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings,
        control_plane: ControlPlaneService,
        pool_registry: PoolRegistryService,
        balance_ledger: BalanceLedgerService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock or control_plane.clock)
        self._settings = settings
        self._control = control_plane
        self._pools = pool_registry
        self._balances = balance_ledger
        self._access = AccessResolver(session)

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(
        self,
        caller: str,
        type_id: int,
        amount: int,
        purpose: str = "",
    ) -> AllocationRequestInfo:
        """Record a PENDING request for ``amount`` units of ``type_id``."""
        state = self._control.require_accepting_submissions(caller)

        if not self._access.is_eligible(caller):
            raise UnauthorizedAccessError(caller, "actor is blacklisted")

        pool = self._pools.get_model(type_id)
        if pool.locked:
            raise ResourceLockedError(type_id)

        if amount <= 0 or amount > state.global_cap:
            raise InvalidResourceAmountError(
                amount, f"amount must be within 1..{state.global_cap}",
            )
        if amount < pool.min_allocation:
            raise InvalidResourceAmountError(
                amount, f"below min allocation {pool.min_allocation}",
            )
        if amount > pool.max_allocation:
            raise ResourceLimitExceededError(type_id, amount, pool.max_allocation)
        if amount > pool.available_quantity:
            raise InsufficientResourceBalanceError(
                amount, pool.available_quantity, f"resource type {type_id}",
            )

        tier = self._access.resolve_tier(caller)
        if tier < pool.priority_floor:
            raise UnauthorizedAccessError(
                caller,
                f"tier {tier} below priority floor {pool.priority_floor}",
            )

        purpose = purpose or ""
        if len(purpose) > MAX_PURPOSE_LENGTH:
            raise InvalidRequestPurposeError(len(purpose), MAX_PURPOSE_LENGTH)

        request_id = self._control.allocate_request_id()
        now = self.clock.now()
        model = AllocationRequestModel(
            request_id=request_id,
            requester=caller,
            resource_type_id=type_id,
            amount=amount,
            status=RequestStatus.PENDING.value,
            priority_snapshot=tier,
            submitted_at=now,
            expires_at=now + self._settings.request_expiry_window,
            purpose=purpose,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "allocation_request_submitted",
            extra={
                "request_id": request_id,
                "requester": caller,
                "resource_type_id": type_id,
                "amount": amount,
                "priority_snapshot": tier,
                "expires_at": model.expires_at,
            },
        )
        return model.to_dto(now)

    # =========================================================================
    # Resolution
    # =========================================================================

    def approve(self, caller: str, request_id: int) -> AllocationRequestInfo:
        """
        Approve a PENDING request.

        Re-reads the pool, re-validates availability, debits the pool,
        credits the requester's balance of that type and marks the request
        APPROVED.  Nothing is mutated unless every check passes.
        """
        self._control.require_initialized("approve allocation request")
        self._control.require_administrator(caller)
        model, now = self._load_pending(caller, request_id, RequestStatus.APPROVED)

        pool = self._pools.get_model(model.resource_type_id)
        if model.amount > pool.available_quantity:
            raise InsufficientResourceBalanceError(
                model.amount,
                pool.available_quantity,
                f"resource type {model.resource_type_id}",
            )

        self._pools.debit_available(model.resource_type_id, model.amount)
        balance = self._balances.credit(model.requester, model.resource_type_id, model.amount)
        self._transition(model, RequestStatus.APPROVED, caller, now)

        logger.info(
            "allocation_request_approved",
            extra={
                "request_id": request_id,
                "requester": model.requester,
                "resource_type_id": model.resource_type_id,
                "amount": model.amount,
                "available_quantity": pool.available_quantity,
                "requester_units": balance.units,
            },
        )
        return model.to_dto(now)

    def reject(self, caller: str, request_id: int) -> AllocationRequestInfo:
        """Reject a PENDING request; no pool or balance effect."""
        self._control.require_initialized("reject allocation request")
        self._control.require_administrator(caller)
        model, now = self._load_pending(caller, request_id, RequestStatus.REJECTED)
        self._transition(model, RequestStatus.REJECTED, caller, now)

        logger.info(
            "allocation_request_rejected",
            extra={
                "request_id": request_id,
                "requester": model.requester,
                "resource_type_id": model.resource_type_id,
                "amount": model.amount,
            },
        )
        return model.to_dto(now)

    def expire_stale_requests(self, caller: str) -> list[int]:
        """Persist EXPIRED on every PENDING request past its expiry height.

        Returns:
            Ids of the requests that were expired, ascending.
        """
        self._control.require_initialized("expire stale requests")
        self._control.require_administrator(caller)
        now = self.clock.now()

        stale = self.session.execute(
            select(AllocationRequestModel)
            .where(
                AllocationRequestModel.status == RequestStatus.PENDING.value,
                AllocationRequestModel.expires_at < now,
            )
            .order_by(AllocationRequestModel.request_id)
            .with_for_update()
        ).scalars().all()

        for model in stale:
            self._transition(model, RequestStatus.EXPIRED, caller, now)

        expired_ids = [m.request_id for m in stale]
        if expired_ids:
            logger.info(
                "allocation_requests_expired",
                extra={"count": len(expired_ids), "request_ids": expired_ids, "height": now},
            )
        return expired_ids

    # =========================================================================
    # Internal
    # =========================================================================

    def _load_pending(
        self,
        caller: str,
        request_id: int,
        target: RequestStatus,
    ) -> tuple[AllocationRequestModel, int]:
        if not is_storable(request_id):
            raise RequestNotFoundError(request_id)
        model = self.session.execute(
            select(AllocationRequestModel)
            .where(AllocationRequestModel.request_id == request_id)
            .with_for_update()
        ).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(request_id)

        current = RequestStatus(model.status)
        if not can_transition(current, target):
            raise InvalidRequestTransitionError(
                caller, request_id, current.value, target.value,
            )

        now = self.clock.now()
        if is_expired(model.expires_at, now):
            raise ExpiredRequestError(request_id, model.expires_at, now)
        return model, now

    def _transition(
        self,
        model: AllocationRequestModel,
        target: RequestStatus,
        actor: str,
        now: int,
    ) -> None:
        current = RequestStatus(model.status)
        if not can_transition(current, target):
            raise InvalidRequestTransitionError(
                actor, model.request_id, current.value, target.value,
            )
        model.status = target.value
        model.resolved_at = now
        model.resolved_by = actor
        self.session.flush()
