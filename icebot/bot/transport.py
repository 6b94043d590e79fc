"""
Telegram implementation of the outbound transport.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import FSInputFile

from icebot.core.orders.errors import NotificationDeliveryFailed
from icebot.core.orders.transport import Transport

logger = logging.getLogger(__name__)


PHOTO_PREFIX = "photo:"
DOCUMENT_PREFIX = "document:"


def photo_ref(file_id: str) -> str:
    return f"{PHOTO_PREFIX}{file_id}"


def document_ref(file_id: str) -> str:
    return f"{DOCUMENT_PREFIX}{file_id}"


class TelegramTransport(Transport):
    """Sends through the Bot API; API errors become NotificationDeliveryFailed."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: Optional[Any] = None,
    ) -> int:
        try:
            message = await self.bot.send_message(chat_id, text, reply_markup=reply_markup)
        except TelegramAPIError as e:
            raise NotificationDeliveryFailed(f"send_message to {chat_id} failed: {e}") from e
        return message.message_id

    async def send_location(self, chat_id: int, latitude: float, longitude: float) -> int:
        try:
            message = await self.bot.send_location(chat_id, latitude=latitude, longitude=longitude)
        except TelegramAPIError as e:
            raise NotificationDeliveryFailed(f"send_location to {chat_id} failed: {e}") from e
        return message.message_id

    async def send_file(
        self,
        chat_id: int,
        ref: Union[str, Path],
        caption: Optional[str] = None,
    ) -> int:
        """
        Send an uploaded file id or a local file.

        File ids prefixed with "photo:" go out as photos, anything else as
        a document.
        """
        try:
            if isinstance(ref, Path):
                message = await self.bot.send_document(
                    chat_id, FSInputFile(ref, filename=ref.name), caption=caption
                )
            elif ref.startswith(PHOTO_PREFIX):
                message = await self.bot.send_photo(
                    chat_id, ref[len(PHOTO_PREFIX):], caption=caption
                )
            else:
                file_id = ref[len(DOCUMENT_PREFIX):] if ref.startswith(DOCUMENT_PREFIX) else ref
                message = await self.bot.send_document(chat_id, file_id, caption=caption)
        except TelegramAPIError as e:
            raise NotificationDeliveryFailed(f"send_file to {chat_id} failed: {e}") from e
        return message.message_id
