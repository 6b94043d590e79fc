"""Telegram update mapping and the Bot API transport."""

import asyncio
from datetime import datetime
from pathlib import Path

import pytest
from aiogram.exceptions import TelegramForbiddenError
from aiogram.methods import SendMessage
from aiogram.types import (
    CallbackQuery,
    Chat,
    Contact,
    Document,
    Location,
    Message,
    PhotoSize,
    User,
)

from icebot.bot.handlers.events import event_from_callback, event_from_message
from icebot.bot.transport import TelegramTransport
from icebot.core.orders.errors import NotificationDeliveryFailed
from icebot.core.orders.models import Coordinates, EventKind

USER = User(id=5, is_bot=False, first_name="Ana", username="ana")
CHAT = Chat(id=5, type="private")


def message(**fields) -> Message:
    return Message(message_id=1, date=datetime.now(), chat=CHAT, from_user=USER, **fields)


class TestEventMapping:
    def test_text_with_reply(self):
        replied = Message(message_id=77, date=datetime.now(), chat=CHAT, text="order")
        event = event_from_message(message(text="hi", reply_to_message=replied))
        assert event.kind is EventKind.TEXT
        assert event.text == "hi"
        assert event.reply_to_message_id == 77
        assert (event.customer_id, event.chat_id, event.username) == (5, 5, "ana")

    def test_contact_and_location(self):
        event = event_from_message(message(contact=Contact(phone_number="+63917", first_name="Ana")))
        assert (event.kind, event.payload) == (EventKind.CONTACT, "+63917")

        event = event_from_message(message(location=Location(latitude=14.5, longitude=121.0)))
        assert event.kind is EventKind.LOCATION
        assert event.payload == Coordinates(14.5, 121.0)

    def test_uploads_keep_their_type(self):
        photos = [
            PhotoSize(file_id="small", file_unique_id="s", width=90, height=90),
            PhotoSize(file_id="big", file_unique_id="b", width=800, height=800),
        ]
        assert event_from_message(message(photo=photos)).payload == "photo:big"

        document = Document(file_id="doc1", file_unique_id="d")
        assert event_from_message(message(document=document)).payload == "document:doc1"

    def test_unsupported_content(self):
        assert event_from_message(message()) is None

    def test_callback(self):
        callback = CallbackQuery(
            id="1", from_user=USER, chat_instance="x", data="cat:sachet", message=message(text="menu")
        )
        event = event_from_callback(callback)
        assert (event.kind, event.payload, event.chat_id) == (EventKind.BUTTON_PRESS, "cat:sachet", 5)


class RecordingBot:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def _call(self, name, *args, **kwargs):
        if self.fail:
            raise TelegramForbiddenError(
                method=SendMessage(chat_id=args[0], text="x"), message="bot was blocked by the user"
            )
        self.calls.append((name, args, kwargs))
        return Message(message_id=len(self.calls), date=datetime.now(), chat=CHAT)

    async def send_message(self, *args, **kwargs):
        return await self._call("message", *args, **kwargs)

    async def send_location(self, *args, **kwargs):
        return await self._call("location", *args, **kwargs)

    async def send_photo(self, *args, **kwargs):
        return await self._call("photo", *args, **kwargs)

    async def send_document(self, *args, **kwargs):
        return await self._call("document", *args, **kwargs)


class TestTransport:
    def test_returns_message_ids_and_picks_send_method(self, tmp_path):
        async def scenario():
            bot = RecordingBot()
            transport = TelegramTransport(bot)
            assert await transport.send_message(5, "hi") == 1
            await transport.send_file(5, "photo:P1", caption="proof")
            await transport.send_file(5, "document:D1")
            await transport.send_file(5, "RAW")
            export = tmp_path / "orders.xlsx"
            export.write_bytes(b"x")
            await transport.send_file(5, export)
            return bot.calls

        calls = asyncio.run(scenario())
        assert [name for name, _, _ in calls] == ["message", "photo", "document", "document", "document"]
        assert calls[1][1] == (5, "P1")
        assert calls[2][1] == (5, "D1")
        assert calls[3][1] == (5, "RAW")
        assert Path(calls[4][1][1].path) == tmp_path / "orders.xlsx"

    def test_api_errors_become_delivery_failures(self):
        async def scenario():
            transport = TelegramTransport(RecordingBot(fail=True))
            with pytest.raises(NotificationDeliveryFailed):
                await transport.send_message(5, "hi")
            with pytest.raises(NotificationDeliveryFailed):
                await transport.send_location(5, 1.0, 2.0)

        asyncio.run(scenario())
