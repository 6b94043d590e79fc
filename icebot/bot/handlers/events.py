"""
Telegram updates -> order bot events.
"""

import logging
from typing import Optional

from aiogram import F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery, Message

from icebot.bot.app import OrderBot
from icebot.bot.transport import document_ref, photo_ref
from icebot.core.orders.models import Coordinates, Event, EventKind

logger = logging.getLogger(__name__)

router = Router(name="events")


def event_from_message(message: Message) -> Optional[Event]:
    """Translate a message; None for anything the order flow does not use."""
    user = message.from_user
    if user is None:
        return None

    if message.contact is not None:
        kind, payload = EventKind.CONTACT, message.contact.phone_number
    elif message.location is not None:
        kind = EventKind.LOCATION
        payload = Coordinates(message.location.latitude, message.location.longitude)
    elif message.photo:
        kind, payload = EventKind.FILE_UPLOAD, photo_ref(message.photo[-1].file_id)
    elif message.document is not None:
        kind, payload = EventKind.FILE_UPLOAD, document_ref(message.document.file_id)
    elif message.text is not None:
        kind, payload = EventKind.TEXT, message.text
    else:
        return None

    reply_to = message.reply_to_message.message_id if message.reply_to_message else None
    return Event(
        customer_id=user.id,
        kind=kind,
        payload=payload,
        chat_id=message.chat.id,
        reply_to_message_id=reply_to,
        username=user.username,
        full_name=user.full_name,
    )


def event_from_callback(callback: CallbackQuery) -> Event:
    user = callback.from_user
    chat_id = callback.message.chat.id if callback.message is not None else user.id
    return Event(
        customer_id=user.id,
        kind=EventKind.BUTTON_PRESS,
        payload=callback.data or "",
        chat_id=chat_id,
        username=user.username,
        full_name=user.full_name,
    )


@router.callback_query()
async def on_button(callback: CallbackQuery, order_bot: OrderBot) -> None:
    try:
        await callback.answer()
    except TelegramAPIError as e:
        logger.debug(f"Callback answer failed: {e}")
    await order_bot.handle(event_from_callback(callback))


@router.message(F.text | F.contact | F.location | F.photo | F.document)
async def on_message(message: Message, order_bot: OrderBot) -> None:
    event = event_from_message(message)
    if event is None:
        return
    await order_bot.handle(event)


@router.message()
async def on_other(message: Message) -> None:
    logger.debug(f"Ignoring {message.content_type} message in chat {message.chat.id}")
