import asyncio
import itertools
import os
from dataclasses import dataclass
from typing import Any, Optional

import pytest

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST")

from icebot.bot.app import build_order_bot
from icebot.config import Settings
from icebot.core.orders.errors import GeocodeUnavailable, NotificationDeliveryFailed
from icebot.core.orders.models import Coordinates, Event, EventKind
from icebot.core.orders.transport import Transport
from icebot.db.memory import InMemoryOrderRepository
from icebot.integrations.geo.base import BaseGeocoder

ADMIN_ID = 999
CUSTOMER_ID = 111
OTHER_CUSTOMER_ID = 222


@dataclass
class Sent:
    kind: str
    chat_id: int
    message_id: int
    text: Optional[str] = None
    reply_markup: Any = None
    ref: Any = None
    location: Optional[tuple] = None

    def callback_data(self) -> list[str]:
        """Callback data of every inline button on the message."""
        keyboard = getattr(self.reply_markup, "inline_keyboard", None) or []
        return [button.callback_data for row in keyboard for button in row]


class FakeTransport(Transport):
    """Records every outbound message; chats in fail_chats raise."""

    def __init__(self):
        self.sent: list[Sent] = []
        self.fail_chats: set[int] = set()
        self.delay = 0.0
        self._ids = itertools.count(1000)

    def _check(self, chat_id: int) -> None:
        if chat_id in self.fail_chats:
            raise NotificationDeliveryFailed(f"chat {chat_id} unreachable")

    async def send_message(self, chat_id, text, reply_markup=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        self._check(chat_id)
        sent = Sent("message", chat_id, next(self._ids), text=text, reply_markup=reply_markup)
        self.sent.append(sent)
        return sent.message_id

    async def send_location(self, chat_id, latitude, longitude):
        self._check(chat_id)
        sent = Sent("location", chat_id, next(self._ids), location=(latitude, longitude))
        self.sent.append(sent)
        return sent.message_id

    async def send_file(self, chat_id, ref, caption=None):
        self._check(chat_id)
        sent = Sent("file", chat_id, next(self._ids), text=caption, ref=ref)
        self.sent.append(sent)
        return sent.message_id

    def to(self, chat_id: int) -> list[Sent]:
        return [s for s in self.sent if s.chat_id == chat_id]

    def last(self, chat_id: int) -> Sent:
        return self.to(chat_id)[-1]

    def texts(self, chat_id: int) -> list[str]:
        return [s.text or "" for s in self.to(chat_id)]


class FakeGeocoder(BaseGeocoder):
    """Returns a fixed address, or raises when address is None."""

    def __init__(self, address: Optional[str] = "123 Main St"):
        self.address = address
        self.calls: list[tuple] = []

    async def lookup(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.address is None:
            raise GeocodeUnavailable("geocoder down")
        return self.address

    async def close(self):
        pass

    @property
    def name(self):
        return "fake"


def text(customer_id: int, body: str, reply_to: Optional[int] = None, username: str = "buyer") -> Event:
    return Event(
        customer_id=customer_id,
        kind=EventKind.TEXT,
        payload=body,
        chat_id=customer_id,
        reply_to_message_id=reply_to,
        username=username,
    )


def button(customer_id: int, data: str) -> Event:
    return Event(customer_id=customer_id, kind=EventKind.BUTTON_PRESS, payload=data, chat_id=customer_id)


def contact(customer_id: int, phone: str) -> Event:
    return Event(customer_id=customer_id, kind=EventKind.CONTACT, payload=phone, chat_id=customer_id)


def location(customer_id: int, latitude: float, longitude: float) -> Event:
    return Event(
        customer_id=customer_id,
        kind=EventKind.LOCATION,
        payload=Coordinates(latitude, longitude),
        chat_id=customer_id,
    )


def upload(customer_id: int, ref: str) -> Event:
    return Event(customer_id=customer_id, kind=EventKind.FILE_UPLOAD, payload=ref, chat_id=customer_id)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        telegram_bot_token="123456:TEST",
        admin_ids=[ADMIN_ID],
        data_dir=tmp_path,
        storage="memory",
        catalog={"sachet": ["₱100", "₱200"], "tube": ["₱150"]},
        payment_instructions="Pay via GCash to 0917",
    )


@pytest.fixture
def make_bot(settings):
    """Factory building an OrderBot on fakes; call it inside the running loop."""

    def factory(geocoder: Optional[BaseGeocoder] = None, repository=None, **overrides):
        current = settings.model_copy(update=overrides) if overrides else settings
        transport = FakeTransport()
        bot = build_order_bot(
            current,
            transport=transport,
            repository=repository or InMemoryOrderRepository(),
            geocoder=geocoder if geocoder is not None else FakeGeocoder(),
        )
        bot.admin_desk.broadcast_delay = 0
        return bot, transport

    return factory


async def place_order(bot, customer_id: int = CUSTOMER_ID, proof: str = "photo:PROOF"):
    """Drive a customer through the happy path; returns the created order."""
    await bot.handle(text(customer_id, "/start"))
    await bot.handle(button(customer_id, "cat:sachet"))
    await bot.handle(button(customer_id, "amt:₱100"))
    await bot.handle(button(customer_id, "cart:add"))
    await bot.handle(button(customer_id, "cart:checkout"))
    await bot.handle(text(customer_id, "Ana"))
    await bot.handle(contact(customer_id, "+639170000000"))
    await bot.handle(location(customer_id, 14.5, 121.0))
    await bot.handle(button(customer_id, "order:pay"))
    await bot.handle(upload(customer_id, proof))
    return await bot.ledger.latest_active(customer_id)
