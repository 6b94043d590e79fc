"""
Shop gate and broadcast mode: process-wide admin switches.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class ShopGate:
    """Whether new orders are accepted, and whether a broadcast is armed."""

    def __init__(self, shop_open: bool = True):
        self._shop_open = shop_open
        self._broadcast_armed = False
        self._lock = asyncio.Lock()

    @property
    def shop_open(self) -> bool:
        return self._shop_open

    @property
    def broadcast_armed(self) -> bool:
        return self._broadcast_armed

    async def set_open(self, value: bool) -> bool:
        """Open or close the shop. Returns the previous value."""
        async with self._lock:
            previous, self._shop_open = self._shop_open, value
        logger.info(f"Shop {'opened' if value else 'closed'}")
        return previous

    async def arm_broadcast(self) -> None:
        async with self._lock:
            self._broadcast_armed = True
        logger.info("Broadcast mode armed")

    async def take_broadcast(self) -> bool:
        """Consume the armed flag. True only for the first caller after arming."""
        async with self._lock:
            armed, self._broadcast_armed = self._broadcast_armed, False
        return armed
