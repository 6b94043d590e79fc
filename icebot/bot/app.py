"""
Order bot facade: one entry point for every inbound event.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from icebot.bot.admin import AdminDesk
from icebot.bot.conversation import OrderConversation
from icebot.core.orders.bridge import AdminReplyBridge
from icebot.core.orders.gate import ShopGate
from icebot.core.orders.ledger import OrderLedger, OrderRepository
from icebot.core.orders.models import Event
from icebot.core.orders.sessions import SessionStore
from icebot.core.orders.transport import Transport
from icebot.integrations.geo.base import BaseGeocoder

logger = logging.getLogger(__name__)


@dataclass
class OrderBot:
    """Wired components of a running bot."""
    sessions: SessionStore
    ledger: OrderLedger
    bridge: AdminReplyBridge
    gate: ShopGate
    admin_desk: AdminDesk
    conversation: OrderConversation
    geocoder: Optional[BaseGeocoder] = None
    _known_customers: set[int] = field(default_factory=set, repr=False)

    async def handle(self, event: Event) -> None:
        """
        Process one event under the customer's lock.

        Never raises: the transport acknowledges every update, so failures
        end up in the log instead of being retried.
        """
        try:
            async with self.sessions.lock(event.customer_id):
                await self._remember(event)

                if self.admin_desk.is_admin(event.customer_id):
                    session = self.sessions.peek(event.customer_id)
                    step = session.step if session is not None else None
                    if await self.admin_desk.handle(event, step):
                        return

                await self.conversation.handle(event)
        except Exception:
            logger.error(
                f"Failed to handle {event.kind.value} event from {event.customer_id}",
                exc_info=True,
            )

    async def _remember(self, event: Event) -> None:
        if event.customer_id in self._known_customers:
            return
        await self.ledger.remember_customer(event.customer_id, event.username, event.full_name)
        self._known_customers.add(event.customer_id)

    async def close(self) -> None:
        if self.geocoder is not None:
            await self.geocoder.close()
        await self.ledger.repository.close()


def build_order_bot(
    settings,
    transport: Transport,
    repository: OrderRepository,
    geocoder: Optional[BaseGeocoder] = None,
) -> OrderBot:
    """
    Wire the bot components from settings.

    Args:
        settings: Application settings
        transport: Outbound chat transport
        repository: Order storage
        geocoder: Reverse geocoder, or None to always use coordinates

    Returns:
        Ready OrderBot
    """
    sessions = SessionStore()
    ledger = OrderLedger(repository)
    bridge = AdminReplyBridge(max_entries=settings.bridge_max_entries)
    gate = ShopGate(shop_open=settings.shop_open_on_start)

    admin_desk = AdminDesk(
        ledger=ledger,
        bridge=bridge,
        gate=gate,
        transport=transport,
        admin_ids=settings.admin_ids,
        announce_chat_id=settings.announce_chat_id,
        exports_dir=settings.exports_dir,
    )
    conversation = OrderConversation(
        sessions=sessions,
        ledger=ledger,
        gate=gate,
        transport=transport,
        admin_desk=admin_desk,
        catalog=settings.catalog,
        geocoder=geocoder,
        geocode_timeout=settings.geocoder_timeout_seconds,
        shop_name=settings.shop_name,
        payment_instructions=settings.payment_instructions,
        payment_qr_file_id=settings.payment_qr_file_id,
    )

    logger.info(
        f"Order bot ready: {len(settings.admin_ids)} admin(s), "
        f"shop {'open' if gate.shop_open else 'closed'}"
    )
    return OrderBot(
        sessions=sessions,
        ledger=ledger,
        bridge=bridge,
        gate=gate,
        admin_desk=admin_desk,
        conversation=conversation,
        geocoder=geocoder,
    )
