"""
Customer side of the order flow.
Drives a session through the order steps one event at a time.
"""

import asyncio
import logging
from typing import Optional

from aiogram import html

from icebot.bot import texts
from icebot.bot.admin import AdminDesk
from icebot.bot.keyboards.order import (
    ADD_TO_CART,
    AMOUNT_PREFIX,
    CANCEL,
    CATEGORY_PREFIX,
    CHECKOUT,
    CONTACT_ADMIN,
    MORE_CATEGORIES,
    PAY,
    RECEIVED_PREFIX,
    VIEW_CART,
    get_amounts_keyboard,
    get_cart_actions_keyboard,
    get_categories_keyboard,
    get_confirmation_keyboard,
    get_remove_keyboard,
    get_share_contact_keyboard,
    get_share_location_keyboard,
)
from icebot.core.orders import cart
from icebot.core.orders.errors import (
    EmptyCart,
    GeocodeUnavailable,
    InvalidSelection,
    NotificationDeliveryFailed,
    OrderNotFound,
    TerminalStage,
)
from icebot.core.orders.gate import ShopGate
from icebot.core.orders.ledger import OrderLedger
from icebot.core.orders.models import Coordinates, Event, EventKind, Session
from icebot.core.orders.sessions import SessionStore
from icebot.core.orders.states import GATED_STEPS, Action, Step, next_step
from icebot.core.orders.transport import Transport
from icebot.integrations.geo.base import BaseGeocoder

logger = logging.getLogger(__name__)


def parse_command(text: str) -> Optional[tuple[str, list[str]]]:
    """Split '/cmd@bot arg1 arg2' into ('cmd', ['arg1', 'arg2'])."""
    text = (text or "").strip()
    if not text.startswith("/"):
        return None
    parts = text.split()
    command = parts[0][1:].split("@", 1)[0].lower()
    if not command:
        return None
    return command, parts[1:]


class OrderConversation:
    """Per-customer order state machine."""

    def __init__(
        self,
        sessions: SessionStore,
        ledger: OrderLedger,
        gate: ShopGate,
        transport: Transport,
        admin_desk: AdminDesk,
        catalog: dict[str, list[str]],
        geocoder: Optional[BaseGeocoder] = None,
        geocode_timeout: float = 5.0,
        shop_name: str = "Ice Shop",
        payment_instructions: str = "",
        payment_qr_file_id: Optional[str] = None,
    ):
        self.sessions = sessions
        self.ledger = ledger
        self.gate = gate
        self.transport = transport
        self.admin_desk = admin_desk
        self.catalog = catalog
        self.geocoder = geocoder
        self.geocode_timeout = geocode_timeout
        self.shop_name = shop_name
        self.payment_instructions = payment_instructions
        self.payment_qr_file_id = payment_qr_file_id

    async def handle(self, event: Event) -> None:
        """Apply one inbound event to the customer's session."""
        session = self.sessions.get(event.customer_id)

        if event.kind is EventKind.TEXT:
            await self._on_text(session, event)
        elif event.kind is EventKind.BUTTON_PRESS:
            await self._on_button(session, event)
        elif event.kind is EventKind.CONTACT:
            await self._on_contact(session, event)
        elif event.kind is EventKind.LOCATION:
            await self._on_location(session, event)
        elif event.kind is EventKind.FILE_UPLOAD:
            await self._on_file(session, event)
        else:
            logger.warning(f"Unsupported event kind {event.kind} from {event.customer_id}")

    async def reply(self, event: Event, text: str, reply_markup=None) -> int:
        return await self.transport.send_message(event.reply_chat_id, text, reply_markup=reply_markup)

    # =========================================================================
    # TEXT AND COMMANDS
    # =========================================================================

    async def _on_text(self, session: Session, event: Event) -> None:
        parsed = parse_command(event.text)
        if parsed is not None:
            await self._on_command(session, event, parsed[0])
            return

        text = event.text.strip()
        step = session.step

        if step is Step.CONTACTING_ADMIN:
            await self._send_to_admin(session, event, text)
        elif step is Step.AWAITING_NAME:
            await self._on_name(session, event, text)
        elif step is Step.AWAITING_PHONE:
            await self.reply(event, texts.ASK_PHONE_AGAIN, get_share_contact_keyboard())
        elif step is Step.AWAITING_LOCATION:
            await self.reply(event, texts.ASK_LOCATION_AGAIN, get_share_location_keyboard())
        elif step is Step.AWAITING_CONFIRMATION:
            await self.reply(event, texts.CONFIRM_WITH_BUTTONS)
        elif step is Step.AWAITING_PAYMENT_PROOF:
            await self.reply(event, texts.UPLOAD_PROOF)
        else:
            await self.reply(event, texts.USE_START)

    async def _on_command(self, session: Session, event: Event, command: str) -> None:
        if command == "start":
            await self.start(session, event)
        elif command == "help":
            await self.reply(event, texts.HELP_MESSAGE)
        elif command == "cart":
            await self._show_cart(session, event)
        elif command == "cancel":
            self.sessions.clear(session.customer_id)
            await self.reply(event, texts.ORDER_CANCELED, get_remove_keyboard())
        elif command == "status":
            await self._show_status(event)
        elif command == "support":
            await self._enter_support(session, event)
        else:
            await self.reply(event, texts.USE_START)

    async def start(self, session: Session, event: Event) -> None:
        """Begin a fresh order; refused while the shop is closed."""
        if not self._may_order(event):
            await self.reply(event, texts.SHOP_CLOSED)
            return

        self.sessions.clear(session.customer_id)
        session.step = next_step(Step.IDLE, Action.START)
        await self.reply(
            event,
            texts.WELCOME_MESSAGE.format(shop_name=html.quote(self.shop_name)),
            get_remove_keyboard(),
        )
        await self.reply(event, texts.CHOOSE_CATEGORY, get_categories_keyboard(list(self.catalog)))

    async def _on_name(self, session: Session, event: Event, name: str) -> None:
        if not name:
            await self.reply(event, texts.ASK_NAME_AGAIN)
            return

        session.name = name
        session.step = next_step(session.step, Action.NAME_ENTERED)
        await self.reply(
            event,
            texts.ASK_PHONE.format(name=html.quote(name)),
            get_share_contact_keyboard(),
        )

    async def _show_cart(self, session: Session, event: Event) -> None:
        lines = cart.view(session)
        if not lines:
            await self.reply(event, texts.CART_EMPTY)
            return
        await self.reply(event, texts.CART_CONTENTS.format(cart=html.quote(str(lines))))

    async def _show_status(self, event: Event) -> None:
        order = await self.ledger.latest_active(event.customer_id)
        if order is None:
            await self.reply(event, texts.NO_ACTIVE_ORDER)
            return
        await self.reply(
            event,
            texts.ORDER_STATUS.format(order_number=order.order_number, status=order.status_label),
        )

    # =========================================================================
    # BUTTONS
    # =========================================================================

    async def _on_button(self, session: Session, event: Event) -> None:
        data = event.payload if isinstance(event.payload, str) else ""

        if data.startswith(CATEGORY_PREFIX):
            await self._select_category(session, event, data[len(CATEGORY_PREFIX):])
        elif data.startswith(AMOUNT_PREFIX):
            await self._select_amount(session, event, data[len(AMOUNT_PREFIX):])
        elif data == ADD_TO_CART:
            await self._add_to_cart(session, event)
        elif data == VIEW_CART:
            await self._show_cart(session, event)
        elif data == MORE_CATEGORIES:
            await self._more_categories(session, event)
        elif data == CHECKOUT:
            await self._checkout(session, event)
        elif data == PAY:
            await self._acknowledge_payment(session, event)
        elif data == CANCEL:
            await self._cancel(session, event)
        elif data == CONTACT_ADMIN:
            await self._enter_support(session, event)
        elif data.startswith(RECEIVED_PREFIX):
            await self._mark_received(event, data[len(RECEIVED_PREFIX):])
        else:
            logger.debug(f"Unknown button {data!r} from {event.customer_id}")
            await self.reply(event, texts.USE_START)

    async def _select_category(self, session: Session, event: Event, category: str) -> None:
        if not self._may_order(event):
            await self.reply(event, texts.SHOP_CLOSED)
            return

        target = next_step(session.step, Action.SELECT_CATEGORY)
        if target is None:
            await self.reply(event, texts.USE_START)
            return
        if category not in self.catalog:
            await self.reply(event, texts.UNKNOWN_CATEGORY)
            return

        session.category = category
        session.selected_amount = None
        session.step = target
        await self.reply(
            event,
            texts.CHOOSE_AMOUNT.format(category=html.quote(category)),
            get_amounts_keyboard(self.catalog[category]),
        )

    async def _select_amount(self, session: Session, event: Event, amount: str) -> None:
        if not self._may_order(event):
            await self.reply(event, texts.SHOP_CLOSED)
            return

        target = next_step(session.step, Action.SELECT_AMOUNT)
        if target is None or session.category is None:
            await self.reply(event, texts.USE_START)
            return
        if amount not in self.catalog.get(session.category, []):
            await self.reply(
                event, texts.UNKNOWN_AMOUNT.format(category=html.quote(session.category))
            )
            return

        session.selected_amount = amount
        session.step = target
        await self.reply(
            event,
            texts.AMOUNT_SELECTED.format(
                category=html.quote(session.category), amount=html.quote(amount)
            ),
            get_cart_actions_keyboard(),
        )

    async def _add_to_cart(self, session: Session, event: Event) -> None:
        target = next_step(session.step, Action.ADD_TO_CART)
        if target is None:
            await self.reply(event, texts.SELECT_FIRST)
            return

        try:
            item = cart.add(session, session.category, session.selected_amount)
        except InvalidSelection:
            await self.reply(event, texts.SELECT_FIRST)
            return

        session.selected_amount = None
        session.step = target
        await self.reply(
            event,
            texts.ADDED_TO_CART.format(
                category=html.quote(item.category),
                amount=html.quote(item.amount_label),
                cart=html.quote(str(cart.view(session))),
            ),
            get_cart_actions_keyboard(),
        )

    async def _more_categories(self, session: Session, event: Event) -> None:
        if session.step is Step.IDLE:
            await self.start(session, event)
            return
        if session.step not in GATED_STEPS:
            await self.reply(event, texts.USE_START)
            return
        if not self._may_order(event):
            await self.reply(event, texts.SHOP_CLOSED)
            return
        await self.reply(event, texts.CHOOSE_CATEGORY, get_categories_keyboard(list(self.catalog)))

    async def _checkout(self, session: Session, event: Event) -> None:
        target = next_step(session.step, Action.CHECKOUT)
        if target is None:
            await self.reply(event, texts.USE_START)
            return

        try:
            cart.checkout(session)
        except EmptyCart:
            await self.reply(event, texts.CART_EMPTY)
            return

        session.step = target
        await self.reply(
            event,
            texts.CART_CONTENTS.format(cart=html.quote(str(cart.view(session)))),
        )
        await self.reply(event, texts.ASK_NAME, get_remove_keyboard())

    async def _acknowledge_payment(self, session: Session, event: Event) -> None:
        target = next_step(session.step, Action.PAYMENT_ACKNOWLEDGED)
        if target is None:
            await self.reply(event, texts.USE_START)
            return

        session.step = target
        await self.reply(
            event,
            texts.PAYMENT_REQUEST.format(instructions=self.payment_instructions),
        )
        if self.payment_qr_file_id:
            await self.transport.send_file(event.reply_chat_id, self.payment_qr_file_id)
        await self.reply(event, texts.UPLOAD_PROOF)

    async def _cancel(self, session: Session, event: Event) -> None:
        target = next_step(session.step, Action.CANCEL)
        if target is None:
            await self.reply(event, texts.USE_START)
            return

        session.step = target
        logger.info(f"Customer {session.customer_id} canceled at confirmation")
        self.sessions.clear(session.customer_id)
        await self.reply(event, texts.ORDER_CANCELED, get_remove_keyboard())

    async def _mark_received(self, event: Event, raw_order_id: str) -> None:
        try:
            order_id = int(raw_order_id)
        except ValueError:
            await self.reply(event, texts.ORDER_NOT_YOURS)
            return

        try:
            order = await self.ledger.mark_received(order_id, event.customer_id)
        except OrderNotFound:
            await self.reply(event, texts.ORDER_NOT_YOURS)
            return
        except TerminalStage:
            await self.reply(event, texts.ALREADY_CLOSED)
            return

        await self.reply(event, texts.RECEIVED_THANKS.format(order_number=order.order_number))
        await self.admin_desk.notify_received(order)

    # =========================================================================
    # SHARES AND UPLOADS
    # =========================================================================

    async def _on_contact(self, session: Session, event: Event) -> None:
        target = next_step(session.step, Action.CONTACT_SHARED)
        if target is None:
            logger.debug(f"Ignoring contact from {event.customer_id} in step {session.step.value}")
            return

        phone = str(event.payload or "").strip()
        if not phone:
            await self.reply(event, texts.ASK_PHONE_AGAIN, get_share_contact_keyboard())
            return

        session.phone = phone
        session.step = target
        await self.reply(event, texts.ASK_LOCATION, get_share_location_keyboard())

    async def _on_location(self, session: Session, event: Event) -> None:
        target = next_step(session.step, Action.LOCATION_SHARED)
        if target is None:
            logger.debug(f"Ignoring location from {event.customer_id} in step {session.step.value}")
            return
        if not isinstance(event.payload, Coordinates):
            await self.reply(event, texts.ASK_LOCATION_AGAIN, get_share_location_keyboard())
            return

        coordinates = event.payload
        session.coordinates = coordinates
        session.address = await self.reverse_geocode(coordinates)
        session.step = target

        await self.reply(event, texts.LOCATION_RECEIVED, get_remove_keyboard())
        await self.reply(
            event,
            texts.ORDER_SUMMARY.format(
                cart=html.quote(str(cart.view(session))),
                name=html.quote(session.name or ""),
                phone=html.quote(session.phone or ""),
                address=html.quote(session.address),
                coordinates=coordinates,
            ),
            get_confirmation_keyboard(),
        )

    async def reverse_geocode(self, coordinates: Coordinates) -> str:
        """Address for the coordinates, or the coordinates themselves."""
        fallback = str(coordinates)
        if self.geocoder is None:
            return fallback

        try:
            address = await asyncio.wait_for(
                self.geocoder.lookup(coordinates.latitude, coordinates.longitude),
                timeout=self.geocode_timeout,
            )
        except (GeocodeUnavailable, asyncio.TimeoutError) as e:
            logger.warning(f"Using coordinates as address for {fallback}: {e!r}")
            return fallback
        except Exception:
            logger.error(f"Geocoder {self.geocoder.name} failed for {fallback}", exc_info=True)
            return fallback
        return address or fallback

    async def _on_file(self, session: Session, event: Event) -> None:
        if session.step is Step.CONTACTING_ADMIN:
            await self.reply(event, texts.SUPPORT_TEXT_ONLY)
            return

        target = next_step(session.step, Action.PROOF_UPLOADED)
        if target is None:
            await self.reply(event, texts.USE_START)
            return

        ref = str(event.payload or "").strip()
        if not ref:
            await self.reply(event, texts.UPLOAD_PROOF)
            return

        session.payment_proof_ref = ref
        session.step = target
        try:
            order = await self.ledger.create(session.customer_id, session)
        except Exception:
            session.step = Step.AWAITING_PAYMENT_PROOF
            raise

        self.sessions.clear(session.customer_id)
        await self.admin_desk.announce_order(order, customer_label(event))
        try:
            await self.reply(event, texts.ORDER_PLACED.format(order_number=order.order_number))
        except NotificationDeliveryFailed:
            logger.warning(f"Order {order.id} placed but customer {session.customer_id} was not told", exc_info=True)

    # =========================================================================
    # SUPPORT
    # =========================================================================

    async def _enter_support(self, session: Session, event: Event) -> None:
        if session.step is not Step.CONTACTING_ADMIN:
            session.return_step = session.step
            session.step = Step.CONTACTING_ADMIN
        await self.reply(event, texts.SUPPORT_PROMPT)

    async def _send_to_admin(self, session: Session, event: Event, text: str) -> None:
        if not text:
            await self.reply(event, texts.SUPPORT_TEXT_ONLY)
            return

        order = await self.ledger.latest_active(session.customer_id)
        delivered = await self.admin_desk.forward_support(
            customer_id=session.customer_id,
            customer=customer_label(event),
            text=text,
            order=order,
        )

        returning = session.return_step
        if returning in (None, Step.IDLE, Step.CONTACTING_ADMIN):
            returning = Step.CHOOSING_CATEGORY
        session.step = returning
        session.return_step = None

        await self.reply(event, texts.SUPPORT_SENT if delivered else texts.SUPPORT_UNAVAILABLE)

    def _may_order(self, event: Event) -> bool:
        return self.gate.shop_open or self.admin_desk.is_admin(event.customer_id)


def customer_label(event: Event) -> str:
    """How a customer is shown to admins."""
    if event.username:
        return f"@{html.quote(event.username)} (<code>{event.customer_id}</code>)"
    if event.full_name:
        return f"{html.quote(event.full_name)} (<code>{event.customer_id}</code>)"
    return f"<code>{event.customer_id}</code>"
