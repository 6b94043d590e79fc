"""Session store and idle eviction."""

import asyncio
from datetime import datetime, timedelta, timezone

from icebot.core.orders.sessions import SessionStore
from icebot.core.orders.states import Action, Step, accepts, next_step

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        return self.now


class TestSessionStore:
    def test_get_creates_empty_session(self):
        store = SessionStore()
        session = store.get(7)
        assert session.step is Step.IDLE
        assert session.is_empty
        assert store.get(7) is session
        assert 7 in store

    def test_clear_resets_in_place(self):
        store = SessionStore()
        session = store.get(7)
        session.step = Step.AWAITING_NAME
        session.name = "Ana"
        store.clear(7)
        assert session.step is Step.IDLE
        assert session.name is None

    def test_sweep_evicts_idle_sessions(self):
        clock = Clock()
        store = SessionStore(clock=clock)
        store.get(1)
        clock.now = T0 + timedelta(minutes=50)
        store.get(2)
        clock.now = T0 + timedelta(minutes=70)

        assert store.sweep(timedelta(minutes=60)) == 1
        assert store.customer_ids() == [2]

    def test_sweep_skips_customers_being_served(self):
        async def scenario():
            clock = Clock()
            store = SessionStore(clock=clock)
            store.get(1)
            clock.now = T0 + timedelta(hours=2)
            async with store.lock(1):
                assert store.sweep(timedelta(minutes=60)) == 0
            assert store.sweep(timedelta(minutes=60)) == 1

        asyncio.run(scenario())

    def test_lock_is_per_customer(self):
        store = SessionStore()
        assert store.lock(1) is store.lock(1)
        assert store.lock(1) is not store.lock(2)


class TestTransitions:
    def test_main_path(self):
        path = [
            (Step.IDLE, Action.START, Step.CHOOSING_CATEGORY),
            (Step.CHOOSING_CATEGORY, Action.SELECT_CATEGORY, Step.CHOOSING_AMOUNT),
            (Step.CHOOSING_AMOUNT, Action.SELECT_AMOUNT, Step.CHOOSING_AMOUNT),
            (Step.CHOOSING_AMOUNT, Action.ADD_TO_CART, Step.CHOOSING_AMOUNT),
            (Step.CHOOSING_AMOUNT, Action.CHECKOUT, Step.AWAITING_NAME),
            (Step.AWAITING_NAME, Action.NAME_ENTERED, Step.AWAITING_PHONE),
            (Step.AWAITING_PHONE, Action.CONTACT_SHARED, Step.AWAITING_LOCATION),
            (Step.AWAITING_LOCATION, Action.LOCATION_SHARED, Step.AWAITING_CONFIRMATION),
            (Step.AWAITING_CONFIRMATION, Action.PAYMENT_ACKNOWLEDGED, Step.AWAITING_PAYMENT_PROOF),
            (Step.AWAITING_PAYMENT_PROOF, Action.PROOF_UPLOADED, Step.COMPLETE),
        ]
        for step, action, target in path:
            assert next_step(step, action) is target

    def test_unexpected_inputs(self):
        assert next_step(Step.AWAITING_NAME, Action.CONTACT_SHARED) is None
        assert not accepts(Step.AWAITING_PHONE, Action.LOCATION_SHARED)
        assert not accepts(Step.IDLE, Action.PROOF_UPLOADED)
