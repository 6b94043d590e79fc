"""
Order ledger: durable record of finalized orders and their lifecycle stage.
The storage engine is pluggable through OrderRepository.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Optional

from icebot.core.orders.errors import (
    InvalidStageTransition,
    OrderNotFound,
    TerminalStage,
)
from icebot.core.orders.models import (
    MessageSender,
    Order,
    OrderMessage,
    OrderStage,
    Session,
    utcnow,
)

logger = logging.getLogger(__name__)


class OrderRepository(ABC):
    """Storage backend for orders, order threads and known customers."""

    @abstractmethod
    async def add_order(self, order: Order) -> Order:
        """Persist a new order, assigning the next sequential id."""
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def save_order(self, order: Order) -> None:
        """Write back stage, delivery link and updated_at of an existing order."""
        pass

    @abstractmethod
    async def list_orders(
        self, limit: int, stage: Optional[OrderStage] = None
    ) -> list[Order]:
        """Most recent orders first."""
        pass

    @abstractmethod
    async def latest_active_order(self, customer_id: int) -> Optional[Order]:
        """Newest order of a customer that is not canceled."""
        pass

    @abstractmethod
    async def add_message(self, message: OrderMessage) -> OrderMessage:
        pass

    @abstractmethod
    async def list_messages(self, order_id: int, limit: int = 200) -> list[OrderMessage]:
        """Thread of an order, oldest first."""
        pass

    @abstractmethod
    async def remember_customer(
        self,
        customer_id: int,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    async def list_customer_ids(self) -> list[int]:
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class OrderLedger:
    """Rules for creating orders and moving them through their stages."""

    def __init__(
        self,
        repository: OrderRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self._clock = clock
        self._lock = asyncio.Lock()

    async def create(self, customer_id: int, snapshot: Session) -> Order:
        """Record a new order copied by value from the session."""
        order = Order.from_session(snapshot, created_at=self._clock())
        order.customer_id = customer_id
        async with self._lock:
            order = await self.repository.add_order(order)
        logger.info(
            f"Order {order.id} created for customer {customer_id} "
            f"({len(order.items)} item(s))"
        )
        return order

    async def get(self, order_id: int) -> Order:
        order = await self.repository.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def update_stage(self, order_id: int, new_stage: int) -> Order:
        """
        Move an order to another stage.

        Raises:
            OrderNotFound: unknown id
            TerminalStage: order is already canceled or completed
            InvalidStageTransition: unknown stage or a move backwards
        """
        async with self._lock:
            order = await self.get(order_id)
            if order.is_terminal:
                raise TerminalStage(order_id, int(order.stage))

            stage = self._coerce_stage(order, new_stage)
            if stage is not OrderStage.CANCELED and stage < order.stage:
                raise InvalidStageTransition(order_id, int(order.stage), int(stage))

            order.stage = stage
            order.updated_at = self._next_timestamp(order)
            await self.repository.save_order(order)

        logger.info(f"Order {order_id} moved to stage {int(stage)} ({stage.label})")
        return order

    async def set_delivery_link(self, order_id: int, link: str) -> Order:
        """Attach a delivery/tracking link; active orders go out for delivery."""
        link = (link or "").strip()
        if not link:
            raise ValueError("Delivery link must not be empty")

        async with self._lock:
            order = await self.get(order_id)
            order.delivery_link = link
            if not order.is_terminal:
                order.stage = OrderStage.OUT_FOR_DELIVERY
            order.updated_at = self._next_timestamp(order)
            await self.repository.save_order(order)

        logger.info(f"Delivery link set for order {order_id}")
        return order

    async def mark_received(self, order_id: int, customer_id: int) -> Order:
        """Customer confirms delivery of their own order."""
        order = await self.get(order_id)
        if order.customer_id != customer_id:
            raise OrderNotFound(order_id)
        return await self.update_stage(order_id, OrderStage.COMPLETED)

    async def list_orders(self, limit: int = 50, stage: Optional[int] = None) -> list[Order]:
        """Most recent orders, optionally only those in one stage."""
        stage_filter = OrderStage(stage) if stage is not None else None
        return await self.repository.list_orders(max(limit, 0), stage_filter)

    async def latest_active(self, customer_id: int) -> Optional[Order]:
        return await self.repository.latest_active_order(customer_id)

    async def add_message(
        self, order_id: int, sender: MessageSender, text: str
    ) -> OrderMessage:
        """Append a message to the order's thread."""
        message = OrderMessage(
            order_id=order_id, sender=sender, text=text, created_at=self._clock()
        )
        return await self.repository.add_message(message)

    async def messages(self, order_id: int, limit: int = 200) -> list[OrderMessage]:
        await self.get(order_id)
        return await self.repository.list_messages(order_id, limit)

    async def remember_customer(
        self,
        customer_id: int,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> None:
        await self.repository.remember_customer(customer_id, username, full_name)

    async def customer_ids(self) -> list[int]:
        return await self.repository.list_customer_ids()

    def _coerce_stage(self, order: Order, value: object) -> OrderStage:
        try:
            return OrderStage(int(value))
        except (TypeError, ValueError):
            raise InvalidStageTransition(order.id, int(order.stage), value) from None

    def _next_timestamp(self, order: Order) -> datetime:
        # updated_at must strictly increase even when the clock has not moved
        now = self._clock()
        if now <= order.updated_at:
            now = order.updated_at + timedelta(microseconds=1)
        return now
