"""
In-memory store of customer sessions with per-customer locking and idle eviction.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Optional

from icebot.core.orders.models import Session, utcnow

logger = logging.getLogger(__name__)


class SessionStore:
    """One mutable session per customer id."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._sessions: dict[int, Session] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, customer_id: int) -> Session:
        """Existing session or a fresh empty one; refreshes last activity."""
        session = self._sessions.get(customer_id)
        if session is None:
            session = Session(customer_id=customer_id)
            self._sessions[customer_id] = session
        session.last_active_at = self._clock()
        return session

    def peek(self, customer_id: int) -> Optional[Session]:
        """Session without touching its activity timestamp."""
        return self._sessions.get(customer_id)

    def clear(self, customer_id: int) -> None:
        """Reset the customer's session to empty."""
        session = self._sessions.get(customer_id)
        if session is not None:
            session.reset()
            session.last_active_at = self._clock()

    def sweep(self, max_idle: timedelta) -> int:
        """Drop sessions idle for longer than max_idle. Returns how many went."""
        cutoff = self._clock() - max_idle
        stale = [
            customer_id
            for customer_id, session in self._sessions.items()
            if session.last_active_at < cutoff and not self._is_busy(customer_id)
        ]
        for customer_id in stale:
            del self._sessions[customer_id]
            self._locks.pop(customer_id, None)
        if stale:
            logger.info(f"Evicted {len(stale)} idle session(s)")
        return len(stale)

    def lock(self, customer_id: int) -> asyncio.Lock:
        """Lock serializing all work for one customer."""
        lock = self._locks.get(customer_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[customer_id] = lock
        return lock

    def _is_busy(self, customer_id: int) -> bool:
        lock = self._locks.get(customer_id)
        return lock is not None and lock.locked()

    def customer_ids(self) -> list[int]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)


async def run_sweeper(
    store: SessionStore,
    max_idle: timedelta,
    interval_seconds: float,
) -> None:
    """Background task evicting idle sessions until cancelled."""
    logger.info(
        f"Session sweeper started (idle limit {max_idle}, every {interval_seconds}s)"
    )
    while True:
        await asyncio.sleep(interval_seconds)
        store.sweep(max_idle)
