"""
Exceptions raised by the order core.
Every one of them is recoverable and is turned into a chat reply or a log line
where it is caught.
"""


class OrderBotError(Exception):
    """Base class for order bot errors."""


class InvalidSelection(OrderBotError):
    """Cart add attempted without both a category and an amount."""


class EmptyCart(OrderBotError):
    """Checkout attempted with nothing selected."""


class OrderNotFound(OrderBotError):
    """No order with the given id."""

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class TerminalStage(OrderBotError):
    """The order is canceled or completed and can no longer change stage."""

    def __init__(self, order_id: int, stage: int):
        super().__init__(f"Order {order_id} is already in terminal stage {stage}")
        self.order_id = order_id
        self.stage = stage


class InvalidStageTransition(OrderBotError):
    """Unknown stage value or a move backwards through the lifecycle."""

    def __init__(self, order_id: int, current: int, requested: object):
        super().__init__(
            f"Order {order_id} cannot move from stage {current} to {requested}"
        )
        self.order_id = order_id
        self.current = current
        self.requested = requested


class BridgeNotFound(OrderBotError):
    """An admin reply references a message the bridge does not know."""

    def __init__(self, message_id: object):
        super().__init__(f"No customer mapped to message {message_id}")
        self.message_id = message_id


class GeocodeUnavailable(OrderBotError):
    """Reverse geocoding failed or timed out."""


class NotificationDeliveryFailed(OrderBotError):
    """An outbound chat message could not be delivered."""
