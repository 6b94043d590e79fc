"""
Bot handlers registration.
"""

from aiogram import Dispatcher

from icebot.bot.handlers.events import router as events_router


def register_handlers(dp: Dispatcher) -> None:
    """Register all handlers to dispatcher."""
    dp.include_router(events_router)
