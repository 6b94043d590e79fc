"""
Admin reply bridge.

Every message the bot posts to the admin chat that an admin may answer is
recorded here, so a later reply ("in reply to" that message) can be routed back
to the customer and order it concerns.
"""

import logging
import re
from collections import OrderedDict
from typing import Optional

from icebot.core.orders.errors import BridgeNotFound
from icebot.core.orders.models import BridgeEntry

logger = logging.getLogger(__name__)


URL_PATTERN = re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE)

TRACKING_KEYWORDS = (
    "tracking",
    "track",
    "rider",
    "courier",
    "on the way",
    "out for delivery",
    "lalamove",
    "grab",
)

TRACKING_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in TRACKING_KEYWORDS) + r")\b",
    re.IGNORECASE,
)


def find_url(text: str) -> Optional[str]:
    """First URL in the text, if any."""
    match = URL_PATTERN.search(text or "")
    return match.group(0).rstrip(".,);]") if match else None


def is_delivery_update(text: str) -> bool:
    """Whether an admin message looks like a delivery/tracking notice."""
    text = text or ""
    return bool(URL_PATTERN.search(text) or TRACKING_PATTERN.search(text))


class AdminReplyBridge:
    """Outbound admin message id -> customer (and order)."""

    def __init__(self, max_entries: Optional[int] = None):
        self._entries: "OrderedDict[int, BridgeEntry]" = OrderedDict()
        self.max_entries = max_entries

    def register(
        self,
        outbound_message_id: int,
        customer_id: int,
        order_id: Optional[int] = None,
    ) -> bool:
        """
        Remember who a message in the admin chat is about.

        Returns:
            False when the id is already mapped; the first mapping is kept.
        """
        if outbound_message_id in self._entries:
            logger.warning(
                f"Bridge entry for message {outbound_message_id} already exists, keeping it"
            )
            return False

        self._entries[outbound_message_id] = BridgeEntry(
            customer_id=customer_id, order_id=order_id
        )
        self._prune()
        return True

    def resolve(self, in_reply_to_message_id: Optional[int]) -> BridgeEntry:
        """
        Customer and order an admin reply refers to.

        Raises:
            BridgeNotFound: the replied-to message was never registered
        """
        entry = self._entries.get(in_reply_to_message_id)
        if entry is None:
            raise BridgeNotFound(in_reply_to_message_id)
        return entry

    def _prune(self) -> None:
        if self.max_entries is None:
            return
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __contains__(self, message_id: int) -> bool:
        return message_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
