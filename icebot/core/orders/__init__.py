"""
Orders module for Ice Order Bot.
Handles sessions, carts, the order ledger and admin reply routing.
"""

from icebot.core.orders.models import (
    BridgeEntry,
    CartItem,
    Coordinates,
    Event,
    EventKind,
    MessageSender,
    Order,
    OrderMessage,
    OrderStage,
    Session,
    status_label,
)
from icebot.core.orders.states import Step, Action, next_step
from icebot.core.orders.errors import (
    OrderBotError,
    InvalidSelection,
    EmptyCart,
    OrderNotFound,
    TerminalStage,
    InvalidStageTransition,
    BridgeNotFound,
    GeocodeUnavailable,
    NotificationDeliveryFailed,
)
from icebot.core.orders.sessions import SessionStore, run_sweeper
from icebot.core.orders.ledger import OrderLedger, OrderRepository
from icebot.core.orders.bridge import AdminReplyBridge, find_url, is_delivery_update
from icebot.core.orders.gate import ShopGate
from icebot.core.orders.transport import Transport
from icebot.core.orders.exporter import order_exporter

__all__ = [
    # Models
    "BridgeEntry",
    "CartItem",
    "Coordinates",
    "Event",
    "EventKind",
    "MessageSender",
    "Order",
    "OrderMessage",
    "OrderStage",
    "Session",
    "status_label",
    # States
    "Step",
    "Action",
    "next_step",
    # Errors
    "OrderBotError",
    "InvalidSelection",
    "EmptyCart",
    "OrderNotFound",
    "TerminalStage",
    "InvalidStageTransition",
    "BridgeNotFound",
    "GeocodeUnavailable",
    "NotificationDeliveryFailed",
    # Components
    "SessionStore",
    "run_sweeper",
    "OrderLedger",
    "OrderRepository",
    "AdminReplyBridge",
    "find_url",
    "is_delivery_update",
    "ShopGate",
    "Transport",
    # Exporter
    "order_exporter",
]
