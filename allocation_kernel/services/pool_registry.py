"""
PoolRegistryService -- registration and bookkeeping of resource pools.

Responsibility:
    Administrator operations over resource types (register, update_price,
    lock, unlock) and the two internal pool movements used by the request
    engine and the balance ledger (debit_available, credit_available).

Architecture position:
    Kernel > Services.  Depends on ControlPlaneService for guards and on
    AllocationSelector for the outstanding-units read used by upserts.

Invariants enforced:
    - Pool bounds: 0 <= available_quantity <= total_supply after every call.
    - Conservation on re-registration: available is recomputed as
      supply - outstanding, and a supply below outstanding is refused.
    - Bounded history: at most ``price_history_capacity`` rows per type; the
      oldest row is deleted when a push overflows.

Failure modes:
    - UnauthorizedAccessError: caller is not the administrator.
    - InvalidResourceAmountError: supply/price/limits out of range, or a
      credit that would exceed total supply.
    - InvalidPriorityLevelError, InvalidResourceNameError.
    - InvalidParameterError: a type id that cannot be stored.
    - ResourceTypeNotFoundError: unknown type id.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import (
    MAX_RESOURCE_NAME_LENGTH,
    MAX_STORED_INTEGER,
    LedgerSettings,
    ResourceTypeInfo,
    is_storable,
)
from allocation_kernel.domain.clock import Clock
from allocation_kernel.domain.history import PriceHistory
from allocation_kernel.domain.roles import is_valid_tier
from allocation_kernel.exceptions import (
    InvalidParameterError,
    InvalidPriorityLevelError,
    InvalidResourceAmountError,
    InvalidResourceNameError,
    ResourceTypeNotFoundError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.resource_type import (
    PriceHistoryEntryModel,
    ResourceTypeModel,
)
from allocation_kernel.selectors.allocation_selector import AllocationSelector
from allocation_kernel.services.base import BaseService
from allocation_kernel.services.control_plane import ControlPlaneService

logger = get_logger("services.pool_registry")


class PoolRegistryService(BaseService):
    """Owns the resource_types and price_history_entries relations."""

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings,
        control_plane: ControlPlaneService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock or control_plane.clock)
        self._settings = settings
        self._control = control_plane
        self._selector = AllocationSelector(session)

    # ------------------------------------------------------------------
    # Administrator operations
    # ------------------------------------------------------------------

    def register(
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
        """
        Create a resource pool, or overwrite an existing one.

        On re-registration the name, price, limits, floor and supply are
        replaced, the lock is cleared, and available is recomputed from the
        units still held in balances so that conservation holds.
        """
        state = self._control.require_initialized("register resource type")
        self._control.require_administrator(caller)
        cap = state.global_cap

        if not is_storable(type_id):
            raise InvalidParameterError(
                "resource type id", type_id, "outside the 64-bit integer range",
            )
        if not name or len(name) > MAX_RESOURCE_NAME_LENGTH:
            raise InvalidResourceNameError(name, MAX_RESOURCE_NAME_LENGTH)
        if total_supply <= 0 or total_supply > cap:
            raise InvalidResourceAmountError(
                total_supply, f"total supply must be within 1..{cap}",
            )
        if unit_price <= 0 or unit_price > cap:
            raise InvalidResourceAmountError(
                unit_price, f"unit price must be within 1..{cap}",
            )
        if not is_valid_tier(priority_floor):
            raise InvalidPriorityLevelError(priority_floor)
        if min_allocation < 1:
            raise InvalidResourceAmountError(
                min_allocation, "min allocation must be at least 1",
            )
        if max_allocation < min_allocation or not is_storable(max_allocation):
            raise InvalidResourceAmountError(
                max_allocation,
                f"max allocation must be within {min_allocation}..{MAX_STORED_INTEGER}",
            )

        now = self.clock.now()
        model = self._find(type_id)
        outstanding = 0
        reregistered = model is not None
        if model is None:
            model = ResourceTypeModel(type_id=type_id, registered_at=now)
            self.session.add(model)
        else:
            outstanding = self._selector.outstanding(type_id)
            if total_supply < outstanding:
                raise InvalidResourceAmountError(
                    total_supply,
                    f"total supply below {outstanding} units still allocated",
                )

        model.name = name
        model.total_supply = total_supply
        model.available_quantity = total_supply - outstanding
        model.unit_price = unit_price
        model.locked = False
        model.priority_floor = priority_floor
        model.min_allocation = min_allocation
        model.max_allocation = max_allocation
        model.last_price_update = now
        self.session.flush()

        logger.info(
            "resource_type_registered",
            extra={
                "resource_type_id": type_id,
                "resource_name": name,
                "total_supply": total_supply,
                "available_quantity": model.available_quantity,
                "unit_price": unit_price,
                "priority_floor": priority_floor,
                "reregistered": reregistered,
            },
        )
        return model.to_dto()

    def update_price(self, caller: str, type_id: int, new_price: int) -> ResourceTypeInfo:
        """Overwrite the unit price and push it onto the bounded history."""
        state = self._control.require_initialized("update price")
        self._control.require_administrator(caller)
        model = self._get(type_id)
        if new_price <= 0 or new_price > state.global_cap:
            raise InvalidResourceAmountError(
                new_price, f"unit price must be within 1..{state.global_cap}",
            )

        entries = self.session.execute(
            select(PriceHistoryEntryModel)
            .where(PriceHistoryEntryModel.resource_type_id == type_id)
            .order_by(PriceHistoryEntryModel.sequence.desc())
        ).scalars().all()
        history = PriceHistory(
            (e.price for e in entries),
            capacity=self._settings.price_history_capacity,
        )
        evicted = history.push(new_price)
        next_sequence = (entries[0].sequence + 1) if entries else 1

        if evicted is not None:
            # Rows beyond capacity can exist if the configured capacity shrank.
            stale = [e.id for e in entries[history.capacity - 1:]]
            self.session.execute(
                delete(PriceHistoryEntryModel).where(PriceHistoryEntryModel.id.in_(stale))
            )

        now = self.clock.now()
        self.session.add(PriceHistoryEntryModel(
            resource_type_id=type_id,
            sequence=next_sequence,
            price=new_price,
            recorded_at=now,
        ))

        previous_price = model.unit_price
        model.unit_price = new_price
        model.last_price_update = now
        self.session.flush()

        logger.info(
            "resource_price_updated",
            extra={
                "resource_type_id": type_id,
                "previous_price": previous_price,
                "unit_price": new_price,
                "history_length": len(history),
                "evicted_price": evicted,
            },
        )
        return model.to_dto()

    def lock(self, caller: str, type_id: int) -> ResourceTypeInfo:
        return self._set_locked(caller, type_id, True)

    def unlock(self, caller: str, type_id: int) -> ResourceTypeInfo:
        return self._set_locked(caller, type_id, False)

    # ------------------------------------------------------------------
    # Internal pool movements
    # ------------------------------------------------------------------

    def debit_available(self, type_id: int, amount: int) -> ResourceTypeModel:
        """Remove ``amount`` from the pool; the caller has checked availability."""
        model = self._get(type_id)
        if amount <= 0 or amount > model.available_quantity:
            raise InvalidResourceAmountError(
                amount, f"pool debit must be within 1..{model.available_quantity}",
            )
        model.available_quantity -= amount
        self.session.flush()
        return model

    def credit_available(self, type_id: int, amount: int) -> ResourceTypeModel:
        """Return ``amount`` to the pool, never beyond total supply."""
        model = self._get(type_id)
        if amount <= 0:
            raise InvalidResourceAmountError(amount, "pool credit must be positive")
        if model.available_quantity + amount > model.total_supply:
            raise InvalidResourceAmountError(
                amount,
                f"pool credit would exceed total supply {model.total_supply}",
            )
        model.available_quantity += amount
        self.session.flush()
        return model

    def get_model(self, type_id: int) -> ResourceTypeModel:
        """Load the pool row for update, raising if unknown."""
        return self._get(type_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_locked(self, caller: str, type_id: int, locked: bool) -> ResourceTypeInfo:
        self._control.require_initialized("lock resource type" if locked else "unlock resource type")
        self._control.require_administrator(caller)
        model = self._get(type_id)
        model.locked = locked
        self.session.flush()
        logger.info(
            "resource_type_locked" if locked else "resource_type_unlocked",
            extra={"resource_type_id": type_id},
        )
        return model.to_dto()

    def _find(self, type_id: int) -> ResourceTypeModel | None:
        if not is_storable(type_id):
            return None
        return self.session.execute(
            select(ResourceTypeModel)
            .where(ResourceTypeModel.type_id == type_id)
            .with_for_update()
        ).scalar_one_or_none()

    def _get(self, type_id: int) -> ResourceTypeModel:
        model = self._find(type_id)
        if model is None:
            raise ResourceTypeNotFoundError(type_id)
        return model

