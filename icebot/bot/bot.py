"""
Telegram bot initialization and configuration.
"""

import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BotCommand, BotCommandScopeChat, BotCommandScopeDefault

from icebot.config import settings

logger = logging.getLogger(__name__)


CUSTOMER_COMMANDS = [
    BotCommand(command="start", description="Start a new order"),
    BotCommand(command="cart", description="Show your cart"),
    BotCommand(command="status", description="Status of your latest order"),
    BotCommand(command="support", description="Message the admin"),
    BotCommand(command="cancel", description="Drop the current order"),
    BotCommand(command="help", description="How to order"),
]

ADMIN_COMMANDS = [
    BotCommand(command="orders", description="Recent orders"),
    BotCommand(command="order", description="Order details"),
    BotCommand(command="stage", description="Set order stage"),
    BotCommand(command="link", description="Send a delivery link"),
    BotCommand(command="open", description="Accept orders"),
    BotCommand(command="close", description="Stop accepting orders"),
    BotCommand(command="broadcast", description="Message all customers"),
    BotCommand(command="export", description="Orders as Excel"),
    BotCommand(command="help", description="Admin commands"),
]


def create_bot() -> Bot:
    """Create configured Telegram bot instance."""
    return Bot(
        token=settings.telegram_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher() -> Dispatcher:
    """Create dispatcher; conversation state lives in the session store, not FSM."""
    return Dispatcher()


async def set_commands(bot: Bot) -> None:
    """Publish the command menus; admins get their own."""
    try:
        await bot.set_my_commands(CUSTOMER_COMMANDS, scope=BotCommandScopeDefault())
        for admin_id in settings.admin_ids:
            await bot.set_my_commands(
                ADMIN_COMMANDS + CUSTOMER_COMMANDS[:-1],
                scope=BotCommandScopeChat(chat_id=admin_id),
            )
    except TelegramAPIError as e:
        logger.warning(f"Could not set bot commands: {e}")


# Global instances
bot: Bot | None = None
dp: Dispatcher | None = None


def get_bot() -> Bot:
    """Get or create bot instance."""
    global bot
    if bot is None:
        bot = create_bot()
    return bot


def get_dispatcher() -> Dispatcher:
    """Get or create dispatcher instance."""
    global dp
    if dp is None:
        dp = create_dispatcher()
    return dp
