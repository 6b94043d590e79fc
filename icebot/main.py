"""
Ice Order Bot - Main entry point.
"""

import asyncio
import logging
import sys
from datetime import timedelta

from aiohttp import web
from aiogram import Bot, Dispatcher
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application

from icebot.bot.app import OrderBot, build_order_bot
from icebot.bot.bot import get_bot, get_dispatcher, set_commands
from icebot.bot.handlers import register_handlers
from icebot.bot.transport import TelegramTransport
from icebot.config import settings
from icebot.core.orders.ledger import OrderRepository
from icebot.core.orders.sessions import run_sweeper
from icebot.db.memory import InMemoryOrderRepository
from icebot.db.repository import SqlOrderRepository
from icebot.db.sqlite import Database
from icebot.integrations.geo import get_geocoder
from icebot.web.admin_api import create_web_app, telegram_verifier


# Fix for Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def create_repository() -> OrderRepository:
    """Order storage selected by settings."""
    if settings.storage == "memory":
        logger.warning("Using in-memory order storage; orders are lost on restart")
        return InMemoryOrderRepository()

    database = Database(settings.db_url, echo=settings.debug)
    await database.init()
    logger.info("Database initialized")
    return SqlOrderRepository(database)


def create_app(bot: Bot, dp: Dispatcher, order_bot: OrderBot) -> web.Application:
    """Web application: health check, optional admin API and, in webhook mode, the webhook."""
    if settings.admin_api_enabled:
        app = create_web_app(
            order_bot,
            admin_ids=settings.admin_ids,
            verify_init_data=telegram_verifier(settings.telegram_bot_token),
        )
    else:
        app = create_web_app()

    if settings.webhook_url:
        SimpleRequestHandler(
            dispatcher=dp,
            bot=bot,
            secret_token=settings.webhook_secret,
        ).register(app, path=settings.webhook_path)
        setup_application(app, dp, bot=bot)
    return app


async def main() -> None:
    """Main function to run the bot."""
    logger.info("Starting Ice Order Bot...")

    bot = get_bot()
    dp = get_dispatcher()
    register_handlers(dp)

    repository = await create_repository()
    order_bot = build_order_bot(
        settings,
        transport=TelegramTransport(bot),
        repository=repository,
        geocoder=get_geocoder(settings),
    )
    dp["order_bot"] = order_bot

    sweeper = asyncio.create_task(
        run_sweeper(
            order_bot.sessions,
            max_idle=timedelta(minutes=settings.session_idle_minutes),
            interval_seconds=settings.session_sweep_interval_seconds,
        )
    )

    runner = None
    try:
        await set_commands(bot)

        if settings.webhook_url or settings.admin_api_enabled:
            runner = web.AppRunner(create_app(bot, dp, order_bot))
            await runner.setup()
            site = web.TCPSite(runner, settings.web_host, settings.web_port)
            await site.start()
            logger.info(f"Web server running on {settings.web_host}:{settings.web_port}")

        if settings.webhook_url:
            await bot.set_webhook(
                settings.webhook_url,
                secret_token=settings.webhook_secret,
                allowed_updates=dp.resolve_used_update_types(),
            )
            logger.info(f"Webhook set to {settings.webhook_url}")
            await asyncio.Event().wait()
        else:
            await bot.delete_webhook(drop_pending_updates=False)
            logger.info("Bot is starting in polling mode...")
            await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        logger.info("Shutting down Ice Order Bot...")
        sweeper.cancel()
        if runner is not None:
            await runner.cleanup()
        await order_bot.close()
        await bot.session.close()
        logger.info("Cleanup complete")


if __name__ == "__main__":
    asyncio.run(main())
