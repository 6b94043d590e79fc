"""
Relational order repository on top of async SQLAlchemy.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from icebot.core.orders.ledger import OrderRepository
from icebot.core.orders.models import (
    CartItem,
    Coordinates,
    MessageSender,
    Order,
    OrderMessage,
    OrderStage,
)
from icebot.db.models import Customer, OrderMessageRecord, OrderRecord
from icebot.db.sqlite import Database

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def order_from_record(record: OrderRecord) -> Order:
    """Map a row to the domain order."""
    coordinates = None
    if record.coords_lat is not None and record.coords_lon is not None:
        coordinates = Coordinates(record.coords_lat, record.coords_lon)

    return Order(
        id=record.id,
        customer_id=record.customer_chat_id,
        items=[CartItem.from_dict(item) for item in (record.items or [])],
        name=record.name,
        phone=record.phone,
        address=record.address,
        coordinates=coordinates,
        payment_proof_ref=record.payment_proof,
        stage=OrderStage(record.status_stage),
        delivery_link=record.delivery_link,
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
    )


def message_from_record(record: OrderMessageRecord) -> OrderMessage:
    return OrderMessage(
        id=record.id,
        order_id=record.order_id,
        sender=MessageSender(record.sender),
        text=record.message,
        created_at=_aware(record.created_at),
    )


class SqlOrderRepository(OrderRepository):
    """Orders stored in the `orders` / `order_messages` / `customers` tables."""

    def __init__(self, database: Database):
        self.db = database

    async def add_order(self, order: Order) -> Order:
        record = OrderRecord(
            customer_chat_id=order.customer_id,
            name=order.name,
            phone=order.phone,
            address=order.address,
            coords_lat=order.coordinates.latitude if order.coordinates else None,
            coords_lon=order.coordinates.longitude if order.coordinates else None,
            items=[item.to_dict() for item in order.items],
            payment_proof=order.payment_proof_ref,
            status=order.status_label,
            status_stage=int(order.stage),
            delivery_link=order.delivery_link,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
        async with self.db.session() as session:
            session.add(record)
            await session.flush()
            created = order_from_record(record)
        return created

    async def get_order(self, order_id: int) -> Optional[Order]:
        async with self.db.session() as session:
            record = await session.get(OrderRecord, order_id)
            return order_from_record(record) if record is not None else None

    async def save_order(self, order: Order) -> None:
        async with self.db.session() as session:
            record = await session.get(OrderRecord, order.id)
            if record is None:
                logger.warning(f"Order {order.id} disappeared before save")
                return
            record.status_stage = int(order.stage)
            record.status = order.status_label
            record.delivery_link = order.delivery_link
            record.updated_at = order.updated_at

    async def list_orders(
        self, limit: int, stage: Optional[OrderStage] = None
    ) -> list[Order]:
        query = select(OrderRecord).order_by(
            OrderRecord.created_at.desc(), OrderRecord.id.desc()
        )
        if stage is not None:
            query = query.where(OrderRecord.status_stage == int(stage))
        query = query.limit(limit)

        async with self.db.session() as session:
            result = await session.execute(query)
            return [order_from_record(r) for r in result.scalars().all()]

    async def latest_active_order(self, customer_id: int) -> Optional[Order]:
        query = (
            select(OrderRecord)
            .where(
                OrderRecord.customer_chat_id == customer_id,
                OrderRecord.status_stage != int(OrderStage.CANCELED),
            )
            .order_by(OrderRecord.created_at.desc(), OrderRecord.id.desc())
            .limit(1)
        )
        async with self.db.session() as session:
            result = await session.execute(query)
            record = result.scalars().first()
            return order_from_record(record) if record is not None else None

    async def add_message(self, message: OrderMessage) -> OrderMessage:
        record = OrderMessageRecord(
            order_id=message.order_id,
            sender=message.sender.value,
            message=message.text,
            created_at=message.created_at,
        )
        async with self.db.session() as session:
            session.add(record)
            await session.flush()
            return message_from_record(record)

    async def list_messages(self, order_id: int, limit: int = 200) -> list[OrderMessage]:
        query = (
            select(OrderMessageRecord)
            .where(OrderMessageRecord.order_id == order_id)
            .order_by(OrderMessageRecord.created_at.asc(), OrderMessageRecord.id.asc())
            .limit(limit)
        )
        async with self.db.session() as session:
            result = await session.execute(query)
            return [message_from_record(r) for r in result.scalars().all()]

    async def remember_customer(
        self,
        customer_id: int,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> None:
        async with self.db.session() as session:
            result = await session.execute(
                select(Customer).where(Customer.telegram_id == customer_id)
            )
            customer = result.scalars().first()
            if customer is None:
                session.add(Customer(
                    telegram_id=customer_id,
                    telegram_username=username,
                    full_name=full_name,
                ))
                return
            if username:
                customer.telegram_username = username
            if full_name:
                customer.full_name = full_name

    async def list_customer_ids(self) -> list[int]:
        async with self.db.session() as session:
            result = await session.execute(select(Customer.telegram_id))
            return list(result.scalars().all())

    async def close(self) -> None:
        await self.db.close()
