"""
Admin side of the bot.

Announces new orders to the admin chat, routes admin replies back to
customers through the reply bridge and serves the admin commands.
Every admin-chat send is best effort: failures are logged and never
undo what the ledger has already recorded.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from aiogram import html

from icebot.bot import texts
from icebot.bot.keyboards.order import (
    ADMIN_STAGE_PREFIX,
    get_admin_order_keyboard,
    get_received_keyboard,
)
from icebot.core.orders.bridge import AdminReplyBridge, find_url, is_delivery_update
from icebot.core.orders.errors import (
    BridgeNotFound,
    InvalidStageTransition,
    NotificationDeliveryFailed,
    OrderNotFound,
    TerminalStage,
)
from icebot.core.orders.exporter import OrderExporter, order_exporter
from icebot.core.orders.gate import ShopGate
from icebot.core.orders.ledger import OrderLedger
from icebot.core.orders.models import (
    Event,
    EventKind,
    MessageSender,
    Order,
    OrderStage,
    status_label,
)
from icebot.core.orders.states import ORDERING_STEPS, Step
from icebot.core.orders.transport import Transport

logger = logging.getLogger(__name__)


ADMIN_COMMANDS = frozenset({
    "open", "close", "orders", "order", "stage", "link", "broadcast", "export", "help",
})

ORDERS_DEFAULT_LIMIT = 10
ORDERS_MAX_LIMIT = 50
EXPORT_LIMIT = 500
THREAD_PREVIEW = 20


class AdminDesk:
    """Everything an admin can see or do from the chat."""

    def __init__(
        self,
        ledger: OrderLedger,
        bridge: AdminReplyBridge,
        gate: ShopGate,
        transport: Transport,
        admin_ids: list[int],
        announce_chat_id: Optional[int] = None,
        exporter: OrderExporter = order_exporter,
        exports_dir: Optional[Path] = None,
        broadcast_delay: float = 0.05,
    ):
        self.ledger = ledger
        self.bridge = bridge
        self.gate = gate
        self.transport = transport
        self.admin_ids = frozenset(admin_ids)
        self.announce_chat_id = announce_chat_id
        self.exporter = exporter
        self.exports_dir = exports_dir
        self.broadcast_delay = broadcast_delay

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids

    async def handle(self, event: Event, step: Optional[Step] = None) -> bool:
        """
        Serve an event from an admin.

        Args:
            event: inbound event, already known to come from an admin
            step: the admin's own ordering step, if they are placing an order

        Returns:
            False when the event belongs to the admin's own order flow
        """
        if event.kind is EventKind.BUTTON_PRESS:
            data = event.payload if isinstance(event.payload, str) else ""
            if not data.startswith(ADMIN_STAGE_PREFIX):
                return False
            await self._on_stage_button(event, data[len(ADMIN_STAGE_PREFIX):])
            return True

        if event.kind is not EventKind.TEXT:
            return False

        text = event.text.strip()
        if text.startswith("/"):
            parts = text.split()
            command = parts[0][1:].split("@", 1)[0].lower()
            if command not in ADMIN_COMMANDS:
                return False
            await self._on_command(event, command, parts[1:], text)
            return True

        if await self.gate.take_broadcast():
            await self.broadcast(event.text, event.reply_chat_id)
            return True

        own_flow = step in ORDERING_STEPS or step is Step.CONTACTING_ADMIN
        # Replies to the bot's own prompts belong to the admin's order flow
        if event.reply_to_message_id is not None and (
            event.reply_to_message_id in self.bridge or not own_flow
        ):
            await self.route_reply(event)
            return True

        if own_flow:
            return False

        await self._reply(event.reply_chat_id, texts.ADMIN_HINT)
        return True

    # =========================================================================
    # ANNOUNCEMENTS
    # =========================================================================

    async def announce_order(self, order: Order, customer: str) -> Optional[int]:
        """
        Post a new order to the admin chat and map the post to the customer.

        Returns:
            The announcement message id, or None when it could not be sent
        """
        if self.announce_chat_id is None:
            logger.warning(f"No admin chat configured, order {order.id} not announced")
            return None

        chat_id = self.announce_chat_id
        try:
            message_id = await self.transport.send_message(
                chat_id,
                texts.ADMIN_NEW_ORDER.format(summary=order.format_full_summary(), customer=customer),
                reply_markup=get_admin_order_keyboard(order.id),
            )
        except NotificationDeliveryFailed:
            logger.error(f"Failed to announce order {order.id}", exc_info=True)
            return None

        self.bridge.register(message_id, order.customer_id, order.id)

        if order.coordinates is not None:
            try:
                location_id = await self.transport.send_location(
                    chat_id, order.coordinates.latitude, order.coordinates.longitude
                )
                self.bridge.register(location_id, order.customer_id, order.id)
            except NotificationDeliveryFailed:
                logger.error(f"Failed to send location of order {order.id}", exc_info=True)

        if order.payment_proof_ref:
            try:
                proof_id = await self.transport.send_file(
                    chat_id,
                    order.payment_proof_ref,
                    caption=texts.ADMIN_PROOF_CAPTION.format(order_number=order.order_number),
                )
                self.bridge.register(proof_id, order.customer_id, order.id)
            except NotificationDeliveryFailed:
                logger.error(f"Failed to send payment proof of order {order.id}", exc_info=True)

        logger.info(f"Order {order.id} announced as message {message_id}")
        return message_id

    async def forward_support(
        self,
        customer_id: int,
        customer: str,
        text: str,
        order: Optional[Order] = None,
    ) -> bool:
        """Relay a customer's support message to the admin chat."""
        if order is not None:
            await self.ledger.add_message(order.id, MessageSender.CUSTOMER, text)

        if self.announce_chat_id is None:
            logger.warning(f"No admin chat configured, support message from {customer_id} dropped")
            return False

        order_part = f" about order {order.order_number}" if order is not None else ""
        try:
            message_id = await self.transport.send_message(
                self.announce_chat_id,
                texts.ADMIN_SUPPORT_MESSAGE.format(
                    customer=customer, order=order_part, text=html.quote(text)
                ),
            )
        except NotificationDeliveryFailed:
            logger.error(f"Failed to forward support message from {customer_id}", exc_info=True)
            return False

        self.bridge.register(message_id, customer_id, order.id if order is not None else None)
        return True

    async def notify_received(self, order: Order) -> None:
        if self.announce_chat_id is None:
            return
        await self._reply(
            self.announce_chat_id,
            texts.ADMIN_RECEIVED.format(order_number=order.order_number),
        )

    async def notify_customer(self, order: Order, text: str, with_received: bool = False) -> bool:
        """Best-effort status message to the order's customer."""
        markup = get_received_keyboard(order.id) if with_received else None
        try:
            await self.transport.send_message(order.customer_id, text, reply_markup=markup)
        except NotificationDeliveryFailed:
            logger.error(
                f"Failed to notify customer {order.customer_id} about order {order.id}",
                exc_info=True,
            )
            return False
        return True

    # =========================================================================
    # ORDER OPERATIONS
    # =========================================================================

    async def change_stage(self, order_id: int, stage: object) -> Order:
        """
        Move an order and tell its customer.

        Raises:
            OrderNotFound, TerminalStage, InvalidStageTransition
        """
        order = await self.ledger.update_stage(order_id, stage)
        await self.notify_customer(
            order,
            texts.STAGE_UPDATES[int(order.stage)].format(order_number=order.order_number),
            with_received=order.stage is OrderStage.OUT_FOR_DELIVERY,
        )
        return order

    async def send_delivery_link(self, order_id: int, link: str) -> Order:
        """
        Attach a delivery link and send it to the customer.

        Raises:
            OrderNotFound, ValueError
        """
        order = await self.ledger.set_delivery_link(order_id, link)
        text = texts.DELIVERY_LINK_UPDATE.format(
            order_number=order.order_number, link=html.quote(order.delivery_link)
        )
        if await self.notify_customer(order, text, with_received=not order.is_terminal):
            await self.ledger.add_message(order.id, MessageSender.ADMIN, order.delivery_link)
        return order

    async def route_reply(self, event: Event) -> None:
        """Forward an admin's reply to the customer the replied-to message is about."""
        chat_id = event.reply_chat_id
        try:
            entry = self.bridge.resolve(event.reply_to_message_id)
        except BridgeNotFound:
            await self._reply(chat_id, texts.ADMIN_CANNOT_MAP)
            return

        text = event.text.strip()
        order_id = entry.order_id

        link = find_url(text)
        if link and order_id is not None:
            try:
                order = await self.ledger.get(order_id)
                if not order.is_terminal:
                    await self.ledger.set_delivery_link(order_id, link)
            except OrderNotFound:
                logger.warning(f"Bridge points at missing order {order_id}")
                order_id = None

        markup = None
        if order_id is not None and is_delivery_update(text):
            markup = get_received_keyboard(order_id)

        try:
            await self.transport.send_message(
                entry.customer_id,
                f"💬 <b>Admin:</b>\n{html.quote(text)}",
                reply_markup=markup,
            )
        except NotificationDeliveryFailed:
            logger.error(f"Failed to deliver admin reply to {entry.customer_id}", exc_info=True)
            await self._reply(chat_id, texts.ADMIN_REPLY_FAILED)
            return

        if order_id is not None:
            await self.ledger.add_message(order_id, MessageSender.ADMIN, text)
        logger.info(f"Admin {event.customer_id} replied to customer {entry.customer_id}")
        await self._reply(chat_id, texts.ADMIN_REPLY_SENT)

    async def broadcast(self, text: str, chat_id: int) -> tuple[int, int]:
        """Send text to every known customer except admins."""
        targets = [
            customer_id
            for customer_id in await self.ledger.customer_ids()
            if customer_id not in self.admin_ids
        ]
        body = html.quote(text.strip())

        sent = failed = 0
        for customer_id in targets:
            try:
                await self.transport.send_message(customer_id, body)
                sent += 1
            except NotificationDeliveryFailed as e:
                failed += 1
                logger.warning(f"Broadcast to {customer_id} failed: {e}")
            if self.broadcast_delay:
                await asyncio.sleep(self.broadcast_delay)

        logger.info(f"Broadcast delivered to {sent}/{len(targets)} customers")
        await self._reply(chat_id, texts.ADMIN_BROADCAST_DONE.format(sent=sent, failed=failed))
        return sent, failed

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def _on_command(self, event: Event, command: str, args: list[str], raw: str) -> None:
        chat_id = event.reply_chat_id

        if command == "help":
            await self._reply(chat_id, texts.ADMIN_HELP_MESSAGE)
        elif command == "open":
            await self.gate.set_open(True)
            await self._reply(chat_id, texts.ADMIN_SHOP_OPENED)
        elif command == "close":
            await self.gate.set_open(False)
            await self._reply(chat_id, texts.ADMIN_SHOP_CLOSED)
        elif command == "broadcast":
            inline_text = raw.split(maxsplit=1)[1] if args else ""
            if inline_text.strip():
                await self.broadcast(inline_text, chat_id)
            else:
                await self.gate.arm_broadcast()
                await self._reply(chat_id, texts.ADMIN_BROADCAST_ARMED)
        elif command == "orders":
            await self._list_orders(chat_id, args)
        elif command == "order":
            await self._show_order(chat_id, args)
        elif command == "stage":
            await self._set_stage_command(chat_id, args)
        elif command == "link":
            await self._link_command(chat_id, args)
        elif command == "export":
            await self._export(chat_id)

    async def _list_orders(self, chat_id: int, args: list[str]) -> None:
        try:
            limit = int(args[0]) if args else ORDERS_DEFAULT_LIMIT
            stage = int(args[1]) if len(args) > 1 else None
            if stage is not None:
                OrderStage(stage)
        except ValueError:
            await self._usage(chat_id, "/orders [limit] [stage]")
            return

        limit = max(1, min(limit, ORDERS_MAX_LIMIT))
        orders = await self.ledger.list_orders(limit=limit, stage=stage)
        if not orders:
            await self._reply(chat_id, texts.ADMIN_NO_ORDERS)
            return

        lines = [f"📋 <b>Orders</b> ({len(orders)})", ""]
        for order in orders:
            items = ", ".join(
                f"{item.category} {item.amount_label}" for item in order.items
            )
            lines.append(
                f"<b>{order.order_number}</b> • {order.status_label} • "
                f"{html.quote(order.name or 'N/A')} • {html.quote(items)} • "
                f"{order.created_at.strftime('%d.%m %H:%M')}"
            )
        await self._reply(chat_id, "\n".join(lines))

    async def _show_order(self, chat_id: int, args: list[str]) -> None:
        order_id = self._parse_id(args)
        if order_id is None:
            await self._usage(chat_id, "/order <id>")
            return

        try:
            order = await self.ledger.get(order_id)
            thread = await self.ledger.messages(order_id, limit=THREAD_PREVIEW)
        except OrderNotFound:
            await self._reply(chat_id, texts.ADMIN_ORDER_NOT_FOUND)
            return

        lines = [order.format_full_summary()]
        if thread:
            lines += ["", "<b>Conversation:</b>"]
            for message in thread:
                who = "👤" if message.sender is MessageSender.CUSTOMER else "🛠"
                lines.append(
                    f"{who} {message.created_at.strftime('%d.%m %H:%M')} {html.quote(message.text)}"
                )

        try:
            message_id = await self.transport.send_message(
                chat_id, "\n".join(lines), reply_markup=get_admin_order_keyboard(order.id)
            )
        except NotificationDeliveryFailed:
            logger.error(f"Failed to show order {order_id} to admin chat {chat_id}", exc_info=True)
            return
        self.bridge.register(message_id, order.customer_id, order.id)

    async def _set_stage_command(self, chat_id: int, args: list[str]) -> None:
        order_id = self._parse_id(args)
        if order_id is None or len(args) < 2:
            await self._usage(chat_id, "/stage <id> <stage>")
            return
        await self.apply_stage(chat_id, order_id, args[1])

    async def _on_stage_button(self, event: Event, data: str) -> None:
        order_part, _, stage_part = data.partition(":")
        try:
            order_id = int(order_part)
        except ValueError:
            logger.warning(f"Malformed stage button {data!r}")
            return
        await self.apply_stage(event.reply_chat_id, order_id, stage_part)

    async def apply_stage(self, chat_id: int, order_id: int, stage: object) -> None:
        """Stage change requested from the chat, with the outcome reported back."""
        try:
            order = await self.change_stage(order_id, stage)
        except OrderNotFound:
            await self._reply(chat_id, texts.ADMIN_ORDER_NOT_FOUND)
        except TerminalStage as e:
            await self._reply(
                chat_id,
                texts.ADMIN_TERMINAL.format(order_id=order_id, status=status_label(e.stage)),
            )
        except InvalidStageTransition as e:
            await self._reply(
                chat_id,
                texts.ADMIN_INVALID_STAGE.format(
                    order_id=order_id,
                    current=e.current,
                    requested=html.quote(str(e.requested)),
                ),
            )
        else:
            await self._reply(
                chat_id,
                texts.ADMIN_STAGE_SET.format(
                    order_number=order.order_number, status=order.status_label
                ),
            )

    async def _link_command(self, chat_id: int, args: list[str]) -> None:
        order_id = self._parse_id(args)
        if order_id is None or len(args) < 2:
            await self._usage(chat_id, "/link <id> <url>")
            return

        try:
            order = await self.send_delivery_link(order_id, " ".join(args[1:]))
        except OrderNotFound:
            await self._reply(chat_id, texts.ADMIN_ORDER_NOT_FOUND)
            return
        except ValueError:
            await self._usage(chat_id, "/link <id> <url>")
            return

        await self._reply(
            chat_id,
            texts.ADMIN_LINK_SET.format(order_number=order.order_number, status=order.status_label),
        )

    async def _export(self, chat_id: int) -> None:
        orders = await self.ledger.list_orders(limit=EXPORT_LIMIT)
        if not orders:
            await self._reply(chat_id, texts.ADMIN_NO_ORDERS)
            return

        path = await asyncio.to_thread(self.exporter.export, orders, self.exports_dir)
        try:
            await self.transport.send_file(chat_id, path, caption=f"📊 {len(orders)} order(s)")
        except NotificationDeliveryFailed:
            logger.error(f"Failed to send export {path}", exc_info=True)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _parse_id(args: list[str]) -> Optional[int]:
        if not args:
            return None
        try:
            return int(args[0].lstrip("#"))
        except ValueError:
            return None

    async def _usage(self, chat_id: int, usage: str) -> None:
        await self._reply(chat_id, texts.ADMIN_USAGE.format(usage=html.quote(usage)))

    async def _reply(self, chat_id: int, text: str) -> Optional[int]:
        try:
            return await self.transport.send_message(chat_id, text)
        except NotificationDeliveryFailed:
            logger.error(f"Failed to send admin message to {chat_id}", exc_info=True)
            return None
