"""
Outbound side of the chat transport, as the order core sees it.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union


class Transport(ABC):
    """Sends messages to chats and returns the outbound message id."""

    @abstractmethod
    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: Optional[Any] = None,
    ) -> int:
        """
        Send a text message.

        Raises:
            NotificationDeliveryFailed: the message could not be delivered
        """
        pass

    @abstractmethod
    async def send_location(self, chat_id: int, latitude: float, longitude: float) -> int:
        pass

    @abstractmethod
    async def send_file(
        self,
        chat_id: int,
        ref: Union[str, Path],
        caption: Optional[str] = None,
    ) -> int:
        """
        Send a file.

        Args:
            ref: an opaque uploaded-file reference or a local path
        """
        pass
