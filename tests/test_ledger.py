"""Order ledger rules, checked against both repositories."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from icebot.core.orders import cart
from icebot.core.orders.errors import InvalidStageTransition, OrderNotFound, TerminalStage
from icebot.core.orders.ledger import OrderLedger
from icebot.core.orders.models import Coordinates, MessageSender, OrderStage, Session
from icebot.db.memory import InMemoryOrderRepository
from icebot.db.repository import SqlOrderRepository
from icebot.db.sqlite import Database

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: int = 1) -> None:
        self.now += timedelta(seconds=seconds)


async def memory_repository():
    return InMemoryOrderRepository()


async def sql_repository():
    database = Database("sqlite+aiosqlite:///:memory:", echo=False)
    await database.init()
    return SqlOrderRepository(database)


@pytest.fixture(params=[memory_repository, sql_repository], ids=["memory", "sql"])
def make_repository(request):
    return request.param


def filled_session(customer_id: int = 1) -> Session:
    session = Session(customer_id=customer_id)
    cart.add(session, "sachet", "₱100")
    session.name = "Ana"
    session.phone = "+63917"
    session.address = "Main St"
    session.coordinates = Coordinates(14.5, 121.0)
    session.payment_proof_ref = "photo:P"
    return session


class TestCreate:
    def test_ids_are_sequential_and_snapshot_is_copied(self, make_repository):
        async def scenario():
            repository = await make_repository()
            ledger = OrderLedger(repository, clock=FrozenClock())
            session = filled_session()

            first = await ledger.create(1, session)
            session.cart[0].amount_label = "changed"
            session.cart.append(session.cart[0])
            second = await ledger.create(1, session)

            stored = await ledger.get(first.id)
            assert (first.id, second.id) == (1, 2)
            assert [i.to_dict() for i in stored.items] == [{"category": "sachet", "amount": "₱100"}]
            assert stored.stage is OrderStage.CONFIRMED
            assert stored.coordinates == Coordinates(14.5, 121.0)
            assert stored.created_at == T0
            await repository.close()

        asyncio.run(scenario())

    def test_missing_order(self, make_repository):
        async def scenario():
            ledger = OrderLedger(await make_repository())
            with pytest.raises(OrderNotFound):
                await ledger.get(42)
            with pytest.raises(OrderNotFound):
                await ledger.update_stage(42, 1)

        asyncio.run(scenario())


class TestStages:
    def test_forward_moves_and_terminal_lock(self, make_repository):
        """After a terminal stage the order refuses every further change."""

        async def scenario():
            ledger = OrderLedger(await make_repository(), clock=FrozenClock())
            order = await ledger.create(1, filled_session())

            assert (await ledger.update_stage(order.id, 1)).stage is OrderStage.OUT_FOR_DELIVERY
            assert (await ledger.update_stage(order.id, 1)).stage is OrderStage.OUT_FOR_DELIVERY
            assert (await ledger.update_stage(order.id, -1)).stage is OrderStage.CANCELED

            with pytest.raises(TerminalStage):
                await ledger.update_stage(order.id, 2)
            assert (await ledger.get(order.id)).stage is OrderStage.CANCELED

        asyncio.run(scenario())

    def test_backward_and_unknown_stages_are_invalid(self, make_repository):
        async def scenario():
            ledger = OrderLedger(await make_repository())
            order = await ledger.create(1, filled_session())
            await ledger.update_stage(order.id, 1)

            with pytest.raises(InvalidStageTransition):
                await ledger.update_stage(order.id, 0)
            with pytest.raises(InvalidStageTransition):
                await ledger.update_stage(order.id, 7)
            with pytest.raises(InvalidStageTransition):
                await ledger.update_stage(order.id, "soon")
            assert (await ledger.get(order.id)).stage is OrderStage.OUT_FOR_DELIVERY

        asyncio.run(scenario())

    def test_updated_at_strictly_increases_with_a_stopped_clock(self, make_repository):
        async def scenario():
            ledger = OrderLedger(await make_repository(), clock=FrozenClock())
            order = await ledger.create(1, filled_session())

            first = await ledger.update_stage(order.id, 0)
            second = await ledger.update_stage(order.id, 1)
            assert order.updated_at < first.updated_at < second.updated_at
            assert (await ledger.get(order.id)).updated_at == second.updated_at

        asyncio.run(scenario())

    def test_delivery_link(self, make_repository):
        async def scenario():
            ledger = OrderLedger(await make_repository())
            order = await ledger.create(1, filled_session())

            linked = await ledger.set_delivery_link(order.id, " https://t.example/1 ")
            assert linked.delivery_link == "https://t.example/1"
            assert linked.stage is OrderStage.OUT_FOR_DELIVERY

            with pytest.raises(ValueError):
                await ledger.set_delivery_link(order.id, "   ")

        asyncio.run(scenario())

    def test_mark_received_checks_ownership(self, make_repository):
        async def scenario():
            ledger = OrderLedger(await make_repository())
            order = await ledger.create(1, filled_session(1))

            with pytest.raises(OrderNotFound):
                await ledger.mark_received(order.id, customer_id=2)
            done = await ledger.mark_received(order.id, customer_id=1)
            assert done.stage is OrderStage.COMPLETED

        asyncio.run(scenario())


class TestQueries:
    def test_list_newest_first_with_stage_filter(self, make_repository):
        async def scenario():
            clock = FrozenClock()
            ledger = OrderLedger(await make_repository(), clock=clock)
            ids = []
            for customer_id in (1, 2, 3):
                ids.append((await ledger.create(customer_id, filled_session(customer_id))).id)
                clock.tick()
            await ledger.update_stage(ids[1], 1)

            assert [o.id for o in await ledger.list_orders()] == list(reversed(ids))
            assert [o.id for o in await ledger.list_orders(limit=2)] == [ids[2], ids[1]]
            assert [o.id for o in await ledger.list_orders(stage=1)] == [ids[1]]

        asyncio.run(scenario())

    def test_latest_active_skips_canceled(self, make_repository):
        async def scenario():
            clock = FrozenClock()
            ledger = OrderLedger(await make_repository(), clock=clock)
            older = await ledger.create(1, filled_session())
            clock.tick()
            newer = await ledger.create(1, filled_session())

            assert (await ledger.latest_active(1)).id == newer.id
            await ledger.update_stage(newer.id, -1)
            assert (await ledger.latest_active(1)).id == older.id
            assert await ledger.latest_active(5) is None

        asyncio.run(scenario())

    def test_thread_and_customers(self, make_repository):
        async def scenario():
            clock = FrozenClock()
            ledger = OrderLedger(await make_repository(), clock=clock)
            order = await ledger.create(1, filled_session())

            await ledger.add_message(order.id, MessageSender.CUSTOMER, "when?")
            clock.tick()
            await ledger.add_message(order.id, MessageSender.ADMIN, "in 10 minutes")
            thread = await ledger.messages(order.id)
            assert [(m.sender, m.text) for m in thread] == [
                (MessageSender.CUSTOMER, "when?"),
                (MessageSender.ADMIN, "in 10 minutes"),
            ]

            await ledger.remember_customer(1, "ana")
            await ledger.remember_customer(1, "ana2")
            await ledger.remember_customer(2)
            assert sorted(await ledger.customer_ids()) == [1, 2]

        asyncio.run(scenario())

    def test_concurrent_creates_get_distinct_ids(self, make_repository):
        async def scenario():
            ledger = OrderLedger(await make_repository())
            orders = await asyncio.gather(
                *(ledger.create(customer_id, filled_session(customer_id)) for customer_id in range(1, 11))
            )
            assert sorted(o.id for o in orders) == list(range(1, 11))
            assert {o.id: o.customer_id for o in orders} == {
                o.id: o.customer_id for o in await ledger.list_orders(limit=20)
            }

        asyncio.run(scenario())
