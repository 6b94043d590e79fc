"""
In-memory order repository.
Everything is lost on restart; used for tests and for STORAGE=memory.
"""

import copy
import itertools
from typing import Optional

from icebot.core.orders.ledger import OrderRepository
from icebot.core.orders.models import Order, OrderMessage, OrderStage


class InMemoryOrderRepository(OrderRepository):
    """Orders, threads and customers kept in dicts. Values are copied in and out."""

    def __init__(self):
        self._orders: dict[int, Order] = {}
        self._messages: dict[int, list[OrderMessage]] = {}
        self._customers: dict[int, dict] = {}
        self._order_ids = itertools.count(1)
        self._message_ids = itertools.count(1)

    async def add_order(self, order: Order) -> Order:
        stored = copy.deepcopy(order)
        stored.id = next(self._order_ids)
        self._orders[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_order(self, order_id: int) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order is not None else None

    async def save_order(self, order: Order) -> None:
        stored = self._orders[order.id]
        stored.stage = order.stage
        stored.delivery_link = order.delivery_link
        stored.updated_at = order.updated_at

    async def list_orders(
        self, limit: int, stage: Optional[OrderStage] = None
    ) -> list[Order]:
        orders = sorted(
            self._orders.values(),
            key=lambda o: (o.created_at, o.id),
            reverse=True,
        )
        if stage is not None:
            orders = [o for o in orders if o.stage == stage]
        return [copy.deepcopy(o) for o in orders[:limit]]

    async def latest_active_order(self, customer_id: int) -> Optional[Order]:
        candidates = [
            o for o in self._orders.values()
            if o.customer_id == customer_id and o.stage != OrderStage.CANCELED
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda o: (o.created_at, o.id))
        return copy.deepcopy(latest)

    async def add_message(self, message: OrderMessage) -> OrderMessage:
        stored = copy.deepcopy(message)
        stored.id = next(self._message_ids)
        self._messages.setdefault(stored.order_id, []).append(stored)
        return copy.deepcopy(stored)

    async def list_messages(self, order_id: int, limit: int = 200) -> list[OrderMessage]:
        return [copy.deepcopy(m) for m in self._messages.get(order_id, [])[:limit]]

    async def remember_customer(
        self,
        customer_id: int,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> None:
        record = self._customers.setdefault(customer_id, {})
        if username:
            record["username"] = username
        if full_name:
            record["full_name"] = full_name

    async def list_customer_ids(self) -> list[int]:
        return list(self._customers)
