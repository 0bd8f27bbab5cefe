"""
Module: allocation_kernel.selectors.allocation_selector
Responsibility: Read-only queries over pools, requests, balances, price
    history and the control-plane singleton.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Lazy expiry: every request read takes the observing height ``now`` and
      reports a PENDING request past its expiry as EXPIRED.
    - Price history is returned most-recent-first.

Failure modes:
    - ResourceTypeNotFoundError / RequestNotFoundError from the ``get_*``
      methods; the ``find_*`` variants return None instead.
"""

from sqlalchemy import func, select

from allocation_kernel.domain.allocation import (
    AllocationRequestInfo,
    BalanceInfo,
    RequestStatus,
    ResourceTypeInfo,
    SystemStateInfo,
    is_storable,
)
from allocation_kernel.exceptions import RequestNotFoundError, ResourceTypeNotFoundError
from allocation_kernel.models.allocation_request import AllocationRequestModel
from allocation_kernel.models.balance import BalanceModel
from allocation_kernel.models.resource_type import (
    PriceHistoryEntryModel,
    ResourceTypeModel,
)
from allocation_kernel.models.system_state import SINGLETON_KEY, SystemStateModel
from allocation_kernel.selectors.base import BaseSelector


class AllocationSelector(BaseSelector):
    """Read-side queries for the allocation ledger."""

    # -- control plane -----------------------------------------------------

    def get_system_state(self) -> SystemStateInfo | None:
        state = self.session.execute(
            select(SystemStateModel).where(SystemStateModel.singleton_key == SINGLETON_KEY)
        ).scalar_one_or_none()
        return state.to_dto() if state is not None else None

    # -- pools -------------------------------------------------------------

    def find_resource_type(self, type_id: int) -> ResourceTypeInfo | None:
        if not is_storable(type_id):
            return None
        model = self.session.execute(
            select(ResourceTypeModel).where(ResourceTypeModel.type_id == type_id)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def get_resource_type(self, type_id: int) -> ResourceTypeInfo:
        info = self.find_resource_type(type_id)
        if info is None:
            raise ResourceTypeNotFoundError(type_id)
        return info

    def list_resource_types(self) -> list[ResourceTypeInfo]:
        models = self.session.execute(
            select(ResourceTypeModel).order_by(ResourceTypeModel.type_id)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def get_price_history(self, type_id: int) -> tuple[int, ...]:
        """Retained prices of ``type_id``, most recent first."""
        self.get_resource_type(type_id)
        prices = self.session.execute(
            select(PriceHistoryEntryModel.price)
            .where(PriceHistoryEntryModel.resource_type_id == type_id)
            .order_by(PriceHistoryEntryModel.sequence.desc())
        ).scalars().all()
        return tuple(prices)

    # -- requests ----------------------------------------------------------

    def find_request(self, request_id: int, now: int) -> AllocationRequestInfo | None:
        if not is_storable(request_id):
            return None
        model = self.session.execute(
            select(AllocationRequestModel).where(
                AllocationRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()
        return model.to_dto(now) if model is not None else None

    def get_request(self, request_id: int, now: int) -> AllocationRequestInfo:
        info = self.find_request(request_id, now)
        if info is None:
            raise RequestNotFoundError(request_id)
        return info

    def list_requests(
        self,
        now: int,
        requester: str | None = None,
        status: RequestStatus | None = None,
    ) -> list[AllocationRequestInfo]:
        """Requests ordered by id, optionally filtered.

        ``status`` filters on the *effective* status at ``now``.
        """
        stmt = select(AllocationRequestModel).order_by(AllocationRequestModel.request_id)
        if requester is not None:
            stmt = stmt.where(AllocationRequestModel.requester == requester)
        infos = [m.to_dto(now) for m in self.session.execute(stmt).scalars().all()]
        if status is not None:
            infos = [i for i in infos if i.status == status]
        return infos

    # -- balances ----------------------------------------------------------

    def get_balance(self, actor: str, type_id: int) -> int:
        if not is_storable(type_id):
            return 0
        units = self.session.execute(
            select(BalanceModel.units).where(
                BalanceModel.actor == actor,
                BalanceModel.resource_type_id == type_id,
            )
        ).scalar_one_or_none()
        return units or 0

    def total_balance(self, actor: str) -> int:
        """Units held by ``actor`` across every resource type."""
        total = self.session.execute(
            select(func.coalesce(func.sum(BalanceModel.units), 0)).where(
                BalanceModel.actor == actor,
            )
        ).scalar_one()
        return int(total)

    def balances_for(self, actor: str) -> list[BalanceInfo]:
        models = self.session.execute(
            select(BalanceModel)
            .where(BalanceModel.actor == actor, BalanceModel.units > 0)
            .order_by(BalanceModel.resource_type_id)
        ).scalars().all()
        return [
            BalanceInfo(actor=m.actor, resource_type_id=m.resource_type_id, units=m.units)
            for m in models
        ]

    def outstanding(self, type_id: int) -> int:
        """Units of ``type_id`` currently held in balances."""
        total = self.session.execute(
            select(func.coalesce(func.sum(BalanceModel.units), 0)).where(
                BalanceModel.resource_type_id == type_id,
            )
        ).scalar_one()
        return int(total)

    def unaccounted_units(self, type_id: int) -> int:
        """total_supply - available - outstanding; zero when conserved."""
        info = self.get_resource_type(type_id)
        return info.total_supply - info.available_quantity - self.outstanding(type_id)
