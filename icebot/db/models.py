"""
SQLAlchemy models for Ice Order Bot.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from icebot.core.orders.models import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# =============================================================================
# ORDERS
# =============================================================================


class OrderRecord(Base):
    """Finalized order."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Delivery profile snapshot
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    coords_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    coords_lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{category, amount}]
    payment_proof: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="confirmed/preparing")
    status_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivery_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    messages: Mapped[list["OrderMessageRecord"]] = relationship(
        back_populates="order", order_by="OrderMessageRecord.created_at"
    )

    __table_args__ = (
        CheckConstraint("status_stage in (-1, 0, 1, 2)", name="ck_orders_stage"),
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_customer", "customer_chat_id"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<OrderRecord(id={self.id}, stage={self.status_stage})>"


class OrderMessageRecord(Base):
    """Customer/admin message attached to an order."""

    __tablename__ = "order_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    sender: Mapped[str] = mapped_column(String(20), nullable=False)  # customer, admin
    message: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    order: Mapped["OrderRecord"] = relationship(back_populates="messages")

    __table_args__ = (
        CheckConstraint("sender in ('customer', 'admin')", name="ck_order_messages_sender"),
        Index("ix_order_messages_order_time", "order_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<OrderMessageRecord(id={self.id}, order={self.order_id}, sender='{self.sender}')>"


# =============================================================================
# CUSTOMERS
# =============================================================================


class Customer(Base):
    """Anyone who has talked to the bot; broadcast recipients."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    telegram_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, telegram_id={self.telegram_id})>"
