"""
Hypothesis-based fuzzing of the ledger's conservation laws.

Random sequences of submissions, resolutions, transfers, returns, locks,
price updates, re-registrations and clock movements are replayed against a
fresh database.  Domain failures are expected and ignored; after every step
the following must hold:

- 0 <= available_quantity <= total_supply for every resource type
- available_quantity + units held in balances == total_supply
- units held in balances == units approved minus units returned
- request ids are exactly 1..total_requests
- price history never exceeds its capacity
"""

from collections import defaultdict

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import allocation_kernel.models  # noqa: F401  (registers tables on Base.metadata)
from allocation_kernel.db.base import Base
from allocation_kernel.domain.allocation import LedgerSettings
from allocation_kernel.domain.clock import DeterministicClock
from allocation_kernel.exceptions import AllocationKernelError
from allocation_kernel.services.allocation_ledger import AllocationLedgerService

ADMIN = "admin"
ACTORS = ("alice", "bob", "carol")
TYPE_IDS = (1, 2)
HISTORY_CAPACITY = 4

actors = st.sampled_from(ACTORS)
type_ids = st.sampled_from(TYPE_IDS + (3,))
amounts = st.integers(min_value=-2, max_value=70)

operations = st.one_of(
    st.tuples(st.just("submit"), actors, type_ids, amounts),
    st.tuples(st.just("approve"), st.integers(min_value=1, max_value=30)),
    st.tuples(st.just("reject"), st.integers(min_value=1, max_value=30)),
    st.tuples(st.just("transfer"), actors, actors, type_ids, amounts),
    st.tuples(st.just("return"), actors, type_ids, amounts),
    st.tuples(st.just("lock"), type_ids),
    st.tuples(st.just("unlock"), type_ids),
    st.tuples(st.just("price"), type_ids, st.integers(min_value=0, max_value=500)),
    st.tuples(st.just("resupply"), type_ids, st.integers(min_value=1, max_value=300)),
    st.tuples(st.just("advance"), st.integers(min_value=0, max_value=80)),
    st.tuples(st.just("sweep")),
    st.tuples(st.just("pause")),
    st.tuples(st.just("resume")),
)


def _fresh_ledger():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    clock = DeterministicClock(start_height=0)
    ledger = AllocationLedgerService(
        session,
        LedgerSettings(
            administrator=ADMIN,
            request_expiry_window=100,
            price_history_capacity=HISTORY_CAPACITY,
        ),
        clock,
    )
    ledger.initialize(ADMIN)
    ledger.register_resource_type(ADMIN, 1, "gpu-hours", 100, 10, 1, 50, 1)
    ledger.register_resource_type(ADMIN, 2, "storage-tb", 40, 3, 5, 40, 1)
    return engine, session, clock, ledger


def _apply(ledger, clock, op, issued) -> None:
    kind = op[0]
    if kind == "submit":
        ledger.submit_request(op[1], op[2], op[3])
    elif kind == "approve":
        approved = ledger.approve_request(ADMIN, op[1])
        issued[approved.resource_type_id] += approved.amount
    elif kind == "reject":
        ledger.reject_request(ADMIN, op[1])
    elif kind == "transfer":
        ledger.transfer(op[1], op[2], op[3], op[4])
    elif kind == "return":
        ledger.return_allocated(op[1], op[2], op[3])
        issued[op[2]] -= op[3]
    elif kind == "lock":
        ledger.lock_resource_type(ADMIN, op[1])
    elif kind == "unlock":
        ledger.unlock_resource_type(ADMIN, op[1])
    elif kind == "price":
        ledger.update_price(ADMIN, op[1], op[2])
    elif kind == "resupply":
        pool = ledger.get_resource_type(op[1])
        ledger.register_resource_type(
            ADMIN, op[1], pool.name, op[2], pool.unit_price,
            pool.min_allocation, pool.max_allocation, pool.priority_floor,
        )
    elif kind == "advance":
        clock.advance(op[1])
    elif kind == "sweep":
        ledger.expire_stale_requests(ADMIN)
    elif kind == "pause":
        ledger.emergency_pause(ADMIN)
    elif kind == "resume":
        ledger.resume(ADMIN)


def _check_invariants(ledger, issued) -> None:
    for type_id in TYPE_IDS:
        pool = ledger.get_resource_type(type_id)
        held = ledger.outstanding(type_id)
        assert 0 <= pool.available_quantity <= pool.total_supply
        assert pool.available_quantity + held == pool.total_supply
        assert held == issued[type_id]
        assert len(ledger.get_price_history(type_id)) <= HISTORY_CAPACITY

    for actor in ACTORS:
        for type_id in TYPE_IDS:
            assert ledger.get_balance(actor, type_id) >= 0

    total = ledger.get_system_state().total_requests
    assert [r.request_id for r in ledger.list_requests()] == list(range(1, total + 1))


class TestConservationFuzzing:

    @given(ops=st.lists(operations, max_size=40))
    @settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_invariants_hold_for_any_sequence(self, ops):
        engine, session, clock, ledger = _fresh_ledger()
        issued: dict[int, int] = defaultdict(int)
        try:
            for op in ops:
                try:
                    _apply(ledger, clock, op, issued)
                except AllocationKernelError:
                    pass
                _check_invariants(ledger, issued)
        finally:
            session.close()
            engine.dispose()

    @given(
        amount=st.integers(min_value=1, max_value=50),
        hops=st.lists(st.tuples(actors, actors), max_size=10),
    )
    @settings(max_examples=50, deadline=None)
    def test_transfers_never_create_units(self, amount, hops):
        engine, session, _, ledger = _fresh_ledger()
        try:
            request = ledger.submit_request("alice", 1, amount)
            ledger.approve_request(ADMIN, request.request_id)

            for sender, recipient in hops:
                held = ledger.get_balance(sender, 1)
                if held == 0 or sender == recipient:
                    continue
                ledger.transfer(sender, recipient, 1, held)

            assert sum(ledger.get_balance(a, 1) for a in ACTORS) == amount
            assert ledger.get_resource_type(1).available_quantity == 100 - amount
        finally:
            session.close()
            engine.dispose()
