"""
Tests for submission, approval, rejection and expiry of allocation requests.

Guard order at submission is part of the contract: each test in
TestSubmitGuardOrder arranges two failing conditions and checks that the
earlier guard wins.
"""

import pytest

from allocation_kernel.domain.allocation import RequestStatus
from allocation_kernel.domain.roles import Role
from allocation_kernel.exceptions import (
    ExpiredRequestError,
    InsufficientResourceBalanceError,
    InvalidRequestPurposeError,
    InvalidRequestTransitionError,
    InvalidResourceAmountError,
    RequestNotFoundError,
    ResourceLimitExceededError,
    ResourceLockedError,
    ResourceTypeNotFoundError,
    UnauthorizedAccessError,
)
from tests.conftest import ADMIN, ALICE, BOB, CAROL, GPU_TYPE, START_HEIGHT

EXPIRY_WINDOW = 144


class TestSubmit:

    def test_submit_records_pending_request(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30, purpose="training run")

        assert request.request_id == 1
        assert request.status == RequestStatus.PENDING
        assert request.requester == ALICE
        assert request.amount == 30
        assert request.priority_snapshot == 1
        assert request.submitted_at == START_HEIGHT
        assert request.expires_at == START_HEIGHT + EXPIRY_WINDOW
        assert request.purpose == "training run"
        assert request.resolved_at is None

    def test_submit_does_not_touch_pool(self, gpu_ledger):
        gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        assert gpu_ledger.get_resource_type(GPU_TYPE).available_quantity == 100

    def test_ids_are_dense(self, gpu_ledger):
        ids = [gpu_ledger.submit_request(ALICE, GPU_TYPE, 5).request_id for _ in range(3)]
        assert ids == [1, 2, 3]
        assert gpu_ledger.get_system_state().total_requests == 3

    def test_failed_submit_leaves_counter(self, gpu_ledger):
        gpu_ledger.submit_request(ALICE, GPU_TYPE, 5)
        with pytest.raises(ResourceLimitExceededError):
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 60)

        assert gpu_ledger.get_system_state().total_requests == 1
        assert gpu_ledger.submit_request(ALICE, GPU_TYPE, 5).request_id == 2

    def test_priority_snapshot_is_frozen(self, gpu_ledger):
        gpu_ledger.assign_role(ADMIN, ALICE, Role.BUSINESS)
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 5)
        gpu_ledger.assign_role(ADMIN, ALICE, Role.USER)

        assert gpu_ledger.get_request(request.request_id).priority_snapshot == 3

    def test_pending_requests_may_oversubscribe(self, gpu_ledger):
        gpu_ledger.submit_request(ALICE, GPU_TYPE, 50)
        gpu_ledger.submit_request(BOB, GPU_TYPE, 50)
        assert gpu_ledger.submit_request(CAROL, GPU_TYPE, 50).request_id == 3

    def test_amount_at_bounds_accepted(self, gpu_ledger):
        assert gpu_ledger.submit_request(ALICE, GPU_TYPE, 1).amount == 1
        assert gpu_ledger.submit_request(ALICE, GPU_TYPE, 50).amount == 50

    def test_unknown_type(self, gpu_ledger):
        with pytest.raises(ResourceTypeNotFoundError):
            gpu_ledger.submit_request(ALICE, 7, 5)

    def test_zero_amount(self, gpu_ledger):
        with pytest.raises(InvalidResourceAmountError):
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 0)

    def test_below_min(self, gpu_ledger, register_resource):
        register_resource(type_id=2, name="storage-tb", min_allocation=10)
        with pytest.raises(InvalidResourceAmountError, match="min allocation"):
            gpu_ledger.submit_request(ALICE, 2, 9)

    def test_above_available(self, gpu_ledger, grant):
        grant(BOB, 50)
        grant(CAROL, 40)
        with pytest.raises(InsufficientResourceBalanceError) as exc_info:
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 11)
        assert exc_info.value.code == "INSUFFICIENT_RESOURCE_BALANCE"
        assert gpu_ledger.submit_request(ALICE, GPU_TYPE, 10).request_id == 3

    def test_tier_below_floor(self, gpu_ledger, register_resource):
        register_resource(type_id=2, name="premium-gpu", priority_floor=4)
        with pytest.raises(UnauthorizedAccessError, match="priority floor"):
            gpu_ledger.submit_request(ALICE, 2, 5)

        gpu_ledger.assign_role(ADMIN, ALICE, Role.PREMIUM)
        assert gpu_ledger.submit_request(ALICE, 2, 5).priority_snapshot == 4

    def test_purpose_too_long(self, gpu_ledger):
        with pytest.raises(InvalidRequestPurposeError) as exc_info:
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 5, purpose="p" * 257)
        assert exc_info.value.length == 257
        assert gpu_ledger.submit_request(ALICE, GPU_TYPE, 5, purpose="p" * 256).request_id == 1


class TestSubmitGuardOrder:

    def test_pause_before_blacklist(self, gpu_ledger):
        gpu_ledger.set_blacklisted(ADMIN, ALICE, True)
        gpu_ledger.emergency_pause(ADMIN)
        with pytest.raises(UnauthorizedAccessError, match="paused"):
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 5)

    def test_blacklist_before_missing_type(self, gpu_ledger):
        gpu_ledger.set_blacklisted(ADMIN, ALICE, True)
        with pytest.raises(UnauthorizedAccessError, match="blacklisted"):
            gpu_ledger.submit_request(ALICE, 99, 5)

    def test_lock_before_amount(self, gpu_ledger):
        gpu_ledger.lock_resource_type(ADMIN, GPU_TYPE)
        with pytest.raises(ResourceLockedError):
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 0)

    def test_max_before_available(self, gpu_ledger, grant):
        grant(BOB, 50)
        grant(CAROL, 45)
        with pytest.raises(ResourceLimitExceededError):
            gpu_ledger.submit_request(ALICE, GPU_TYPE, 51)

    def test_available_before_tier(self, gpu_ledger, register_resource):
        register_resource(type_id=2, name="premium-gpu", total_supply=10, max_allocation=50, priority_floor=5)
        with pytest.raises(InsufficientResourceBalanceError):
            gpu_ledger.submit_request(ALICE, 2, 11)

    def test_tier_before_purpose(self, gpu_ledger, register_resource):
        register_resource(type_id=2, name="premium-gpu", priority_floor=5)
        with pytest.raises(UnauthorizedAccessError):
            gpu_ledger.submit_request(ALICE, 2, 5, purpose="p" * 300)


class TestApprove:

    def test_approve_moves_units(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        approved = gpu_ledger.approve_request(ADMIN, request.request_id)

        assert approved.status == RequestStatus.APPROVED
        assert approved.resolved_by == ADMIN
        assert approved.resolved_at == START_HEIGHT
        assert gpu_ledger.get_resource_type(GPU_TYPE).available_quantity == 70
        assert gpu_ledger.get_balance(ALICE, GPU_TYPE) == 30

    def test_approve_twice_fails_unauthorized(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        gpu_ledger.approve_request(ADMIN, request.request_id)

        with pytest.raises(UnauthorizedAccessError) as exc_info:
            gpu_ledger.approve_request(ADMIN, request.request_id)
        assert isinstance(exc_info.value, InvalidRequestTransitionError)
        assert exc_info.value.code == "UNAUTHORIZED_ACCESS"
        assert exc_info.value.from_status == "APPROVED"

        assert gpu_ledger.get_resource_type(GPU_TYPE).available_quantity == 70
        assert gpu_ledger.get_balance(ALICE, GPU_TYPE) == 30

    def test_approve_rejected_request_fails(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        gpu_ledger.reject_request(ADMIN, request.request_id)
        with pytest.raises(UnauthorizedAccessError):
            gpu_ledger.approve_request(ADMIN, request.request_id)
        assert gpu_ledger.get_balance(ALICE, GPU_TYPE) == 0

    def test_admin_only(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        with pytest.raises(UnauthorizedAccessError):
            gpu_ledger.approve_request(ALICE, request.request_id)
        assert gpu_ledger.get_request(request.request_id).status == RequestStatus.PENDING

    def test_unknown_request(self, gpu_ledger):
        with pytest.raises(RequestNotFoundError) as exc_info:
            gpu_ledger.approve_request(ADMIN, 404)
        assert exc_info.value.code == "REQUEST_NOT_FOUND"

    def test_revalidates_availability(self, gpu_ledger):
        first = gpu_ledger.submit_request(ALICE, GPU_TYPE, 50)
        second = gpu_ledger.submit_request(BOB, GPU_TYPE, 50)
        third = gpu_ledger.submit_request(CAROL, GPU_TYPE, 10)
        gpu_ledger.approve_request(ADMIN, first.request_id)
        gpu_ledger.approve_request(ADMIN, second.request_id)

        with pytest.raises(InsufficientResourceBalanceError):
            gpu_ledger.approve_request(ADMIN, third.request_id)
        assert gpu_ledger.get_request(third.request_id).status == RequestStatus.PENDING
        assert gpu_ledger.get_balance(CAROL, GPU_TYPE) == 0

    def test_not_gated_by_lock_or_pause(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 10)
        gpu_ledger.lock_resource_type(ADMIN, GPU_TYPE)
        gpu_ledger.emergency_pause(ADMIN)
        assert gpu_ledger.approve_request(ADMIN, request.request_id).status == RequestStatus.APPROVED

    def test_balances_are_per_type(self, gpu_ledger, register_resource):
        register_resource(type_id=2, name="storage-tb")
        for type_id, amount in ((GPU_TYPE, 10), (2, 7)):
            request = gpu_ledger.submit_request(ALICE, type_id, amount)
            gpu_ledger.approve_request(ADMIN, request.request_id)

        assert gpu_ledger.get_balance(ALICE, GPU_TYPE) == 10
        assert gpu_ledger.get_balance(ALICE, 2) == 7
        assert gpu_ledger.total_balance(ALICE) == 17


class TestReject:

    def test_reject_has_no_pool_effect(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        rejected = gpu_ledger.reject_request(ADMIN, request.request_id)

        assert rejected.status == RequestStatus.REJECTED
        assert gpu_ledger.get_resource_type(GPU_TYPE).available_quantity == 100
        assert gpu_ledger.get_balance(ALICE, GPU_TYPE) == 0

    def test_reject_twice_fails(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        gpu_ledger.reject_request(ADMIN, request.request_id)
        with pytest.raises(UnauthorizedAccessError):
            gpu_ledger.reject_request(ADMIN, request.request_id)

    def test_admin_only(self, gpu_ledger):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        with pytest.raises(UnauthorizedAccessError):
            gpu_ledger.reject_request(BOB, request.request_id)


class TestExpiry:

    def test_pending_reads_expired_after_window(self, gpu_ledger, deterministic_clock):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)

        deterministic_clock.advance(EXPIRY_WINDOW)
        assert gpu_ledger.get_request(request.request_id).status == RequestStatus.PENDING
        assert not gpu_ledger.is_request_expired(request.request_id)

        deterministic_clock.advance(1)
        info = gpu_ledger.get_request(request.request_id)
        assert info.status == RequestStatus.EXPIRED
        assert info.stored_status == RequestStatus.PENDING
        assert gpu_ledger.is_request_expired(request.request_id)

    def test_approve_expired_fails(self, gpu_ledger, deterministic_clock):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        deterministic_clock.advance(EXPIRY_WINDOW + 1)

        with pytest.raises(ExpiredRequestError) as exc_info:
            gpu_ledger.approve_request(ADMIN, request.request_id)
        assert exc_info.value.code == "EXPIRED_REQUEST"
        assert exc_info.value.expires_at == START_HEIGHT + EXPIRY_WINDOW
        assert gpu_ledger.get_resource_type(GPU_TYPE).available_quantity == 100

    def test_reject_expired_fails(self, gpu_ledger, deterministic_clock):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        deterministic_clock.advance(EXPIRY_WINDOW + 1)
        with pytest.raises(ExpiredRequestError):
            gpu_ledger.reject_request(ADMIN, request.request_id)

    def test_approve_at_last_height_succeeds(self, gpu_ledger, deterministic_clock):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 30)
        deterministic_clock.advance(EXPIRY_WINDOW)
        assert gpu_ledger.approve_request(ADMIN, request.request_id).status == RequestStatus.APPROVED

    def test_sweep_persists_expired(self, gpu_ledger, deterministic_clock):
        stale = gpu_ledger.submit_request(ALICE, GPU_TYPE, 10)
        approved = gpu_ledger.submit_request(BOB, GPU_TYPE, 10)
        gpu_ledger.approve_request(ADMIN, approved.request_id)
        deterministic_clock.advance(10)
        fresh = gpu_ledger.submit_request(CAROL, GPU_TYPE, 10)

        deterministic_clock.advance(EXPIRY_WINDOW - 5)
        assert gpu_ledger.expire_stale_requests(ADMIN) == [stale.request_id]

        info = gpu_ledger.get_request(stale.request_id)
        assert info.stored_status == RequestStatus.EXPIRED
        assert info.resolved_by == ADMIN
        assert gpu_ledger.get_request(fresh.request_id).status == RequestStatus.PENDING
        assert gpu_ledger.get_request(approved.request_id).status == RequestStatus.APPROVED

    def test_sweep_admin_only(self, gpu_ledger):
        with pytest.raises(UnauthorizedAccessError):
            gpu_ledger.expire_stale_requests(ALICE)

    def test_swept_request_cannot_be_approved(self, gpu_ledger, deterministic_clock):
        request = gpu_ledger.submit_request(ALICE, GPU_TYPE, 10)
        deterministic_clock.advance(EXPIRY_WINDOW + 1)
        gpu_ledger.expire_stale_requests(ADMIN)
        with pytest.raises(InvalidRequestTransitionError):
            gpu_ledger.approve_request(ADMIN, request.request_id)

    def test_list_requests_filters_on_effective_status(self, gpu_ledger, deterministic_clock):
        gpu_ledger.submit_request(ALICE, GPU_TYPE, 10)
        deterministic_clock.advance(EXPIRY_WINDOW + 1)
        gpu_ledger.submit_request(ALICE, GPU_TYPE, 10)
        gpu_ledger.submit_request(BOB, GPU_TYPE, 10)

        expired = gpu_ledger.list_requests(status=RequestStatus.EXPIRED)
        pending_alice = gpu_ledger.list_requests(requester=ALICE, status=RequestStatus.PENDING)

        assert [r.request_id for r in expired] == [1]
        assert [r.request_id for r in pending_alice] == [2]
        assert len(gpu_ledger.list_requests()) == 3
