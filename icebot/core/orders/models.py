"""
Order models for Ice Order Bot.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional

from aiogram import html

from icebot.core.orders.states import Step


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def format_coordinate(value: float) -> str:
    """Render a coordinate without a trailing '.0' for whole numbers."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class OrderStage(IntEnum):
    """Order lifecycle stage."""
    CANCELED = -1
    CONFIRMED = 0
    OUT_FOR_DELIVERY = 1
    COMPLETED = 2

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES


STATUS_LABELS = {
    OrderStage.CANCELED: "canceled",
    OrderStage.CONFIRMED: "confirmed/preparing",
    OrderStage.OUT_FOR_DELIVERY: "out_for_delivery",
    OrderStage.COMPLETED: "completed",
}

TERMINAL_STAGES = frozenset({OrderStage.CANCELED, OrderStage.COMPLETED})


def status_label(stage: int) -> str:
    """Human readable status for a stage value."""
    return OrderStage(stage).label


class EventKind(Enum):
    """Kinds of inbound chat events."""
    TEXT = "text"
    CONTACT = "contact"
    LOCATION = "location"
    FILE_UPLOAD = "file_upload"
    BUTTON_PRESS = "button_press"


class MessageSender(Enum):
    """Author of a message in an order thread."""
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair."""
    latitude: float
    longitude: float

    def __str__(self) -> str:
        return f"{format_coordinate(self.latitude)}, {format_coordinate(self.longitude)}"


@dataclass(frozen=True)
class Event:
    """One inbound unit of work from the chat transport."""
    customer_id: int
    kind: EventKind
    payload: object = None
    chat_id: Optional[int] = None
    reply_to_message_id: Optional[int] = None
    username: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def reply_chat_id(self) -> int:
        return self.chat_id if self.chat_id is not None else self.customer_id

    @property
    def text(self) -> str:
        if self.kind is EventKind.TEXT and isinstance(self.payload, str):
            return self.payload
        return ""


@dataclass
class CartItem:
    """Single line in the cart."""
    category: str
    amount_label: str

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"category": self.category, "amount": self.amount_label}

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            category=data["category"],
            amount_label=data.get("amount", data.get("amount_label", "")),
        )


@dataclass
class Session:
    """In-progress conversation and order-building state of one customer."""
    customer_id: int
    step: Step = Step.IDLE
    category: Optional[str] = None
    selected_amount: Optional[str] = None
    cart: list[CartItem] = field(default_factory=list)
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    payment_proof_ref: Optional[str] = None
    return_step: Optional[Step] = None
    last_active_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        # Unknown steps are rejected here rather than silently falling through.
        self.step = Step(self.step)

    @property
    def is_empty(self) -> bool:
        return self.step is Step.IDLE and not self.cart and self.category is None

    def reset(self) -> None:
        """Drop everything collected for the current order attempt."""
        self.step = Step.IDLE
        self.category = None
        self.selected_amount = None
        self.cart = []
        self.name = None
        self.phone = None
        self.address = None
        self.coordinates = None
        self.payment_proof_ref = None
        self.return_step = None


@dataclass
class Order:
    """Finalized order as recorded in the ledger."""
    id: Optional[int]
    customer_id: int
    items: list[CartItem] = field(default_factory=list)
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    payment_proof_ref: Optional[str] = None
    stage: OrderStage = OrderStage.CONFIRMED
    delivery_link: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.stage = OrderStage(self.stage)

    @classmethod
    def from_session(cls, session: Session, created_at: Optional[datetime] = None) -> "Order":
        """Snapshot a session; nothing is shared with it afterwards."""
        now = created_at or utcnow()
        return cls(
            id=None,
            customer_id=session.customer_id,
            items=copy.deepcopy(session.cart),
            name=session.name,
            phone=session.phone,
            address=session.address,
            coordinates=session.coordinates,
            payment_proof_ref=session.payment_proof_ref,
            stage=OrderStage.CONFIRMED,
            created_at=now,
            updated_at=now,
        )

    @property
    def status_label(self) -> str:
        return self.stage.label

    @property
    def order_number(self) -> str:
        """Human-readable order number."""
        return f"#{self.id}"

    @property
    def is_terminal(self) -> bool:
        return self.stage.is_terminal

    def to_dict(self) -> dict:
        """Convert to the ledger row shape."""
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "lat": self.coordinates.latitude if self.coordinates else None,
            "lon": self.coordinates.longitude if self.coordinates else None,
            "items": [item.to_dict() for item in self.items],
            "payment_proof_ref": self.payment_proof_ref,
            "stage": int(self.stage),
            "status_label": self.status_label,
            "delivery_link": self.delivery_link,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def format_items_summary(self) -> str:
        """Format items as text summary."""
        return "\n".join(
            f"{i}. {html.quote(item.category)} — {html.quote(item.amount_label)}"
            for i, item in enumerate(self.items, 1)
        )

    def format_full_summary(self) -> str:
        """Format complete order summary for the admin channel."""
        lines = [
            f"🧊 <b>Order {self.order_number}</b>",
            f"📅 {self.created_at.strftime('%d.%m.%Y %H:%M')} UTC",
            f"📌 Status: {self.status_label}",
            "",
            "<b>Items:</b>",
            self.format_items_summary() or "—",
            "",
            f"👤 {html.quote(self.name or 'N/A')}",
            f"📱 {html.quote(self.phone or 'N/A')}",
            f"📍 {html.quote(self.address or 'N/A')}",
        ]
        if self.coordinates:
            lines.append(f"🗺️ {self.coordinates}")
        if self.delivery_link:
            lines.append(f"🚚 {html.quote(self.delivery_link)}")
        return "\n".join(lines)


@dataclass
class OrderMessage:
    """One entry in an order's conversation thread."""
    order_id: int
    sender: MessageSender
    text: str
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "sender": self.sender.value,
            "message": self.text,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class BridgeEntry:
    """Where an admin reply to an outbound message should go."""
    customer_id: int
    order_id: Optional[int] = None
