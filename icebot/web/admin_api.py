"""
Admin HTTP API for the orders mini-app.

Requests carry Telegram WebApp init data in the X-Telegram-Init-Data
header; only configured admins get through.
"""

import json
import logging
from typing import Callable, Optional

from aiohttp import web
from aiogram.utils.web_app import safe_parse_webapp_init_data

from icebot.bot.app import OrderBot
from icebot.core.orders.errors import (
    InvalidStageTransition,
    OrderNotFound,
    TerminalStage,
)
from icebot.core.orders.models import OrderStage

logger = logging.getLogger(__name__)


API_PREFIX = "/api/admin"
INIT_DATA_HEADER = "X-Telegram-Init-Data"

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

ORDER_BOT_KEY = "order_bot"
VERIFIER_KEY = "verify_init_data"
ADMIN_IDS_KEY = "admin_ids"


def telegram_verifier(bot_token: str) -> Callable[[str], int]:
    """Init data -> Telegram user id; ValueError when the signature is wrong."""

    def verify(init_data: str) -> int:
        data = safe_parse_webapp_init_data(token=bot_token, init_data=init_data)
        if data.user is None:
            raise ValueError("Init data carries no user")
        return data.user.id

    return verify


def json_error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def admin_auth(request: web.Request, handler):
    if not request.path.startswith(API_PREFIX):
        return await handler(request)

    init_data = request.headers.get(INIT_DATA_HEADER)
    if not init_data:
        return json_error(401, "missing init data")

    try:
        user_id = request.app[VERIFIER_KEY](init_data)
    except ValueError as e:
        logger.warning(f"Rejected admin API request: {e}")
        return json_error(401, "invalid init data")

    if user_id not in request.app[ADMIN_IDS_KEY]:
        logger.warning(f"User {user_id} is not an admin")
        return json_error(403, "forbidden")

    request["admin_id"] = user_id
    return await handler(request)


def _order_bot(request: web.Request) -> OrderBot:
    return request.app[ORDER_BOT_KEY]


def _order_id(request: web.Request) -> int:
    return int(request.match_info["order_id"])


async def _json_body(request: web.Request) -> Optional[dict]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


# =============================================================================
# HANDLERS
# =============================================================================

async def healthcheck(_: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def list_orders(request: web.Request) -> web.Response:
    try:
        limit = int(request.query.get("limit", DEFAULT_LIMIT))
        raw_stage = request.query.get("stage")
        stage = int(OrderStage(int(raw_stage))) if raw_stage not in (None, "") else None
    except ValueError:
        return json_error(400, "limit and stage must be integers; stage one of -1, 0, 1, 2")

    limit = max(1, min(limit, MAX_LIMIT))
    orders = await _order_bot(request).ledger.list_orders(limit=limit, stage=stage)
    return web.json_response({"orders": [order.to_dict() for order in orders]})


async def get_order(request: web.Request) -> web.Response:
    try:
        order = await _order_bot(request).ledger.get(_order_id(request))
    except OrderNotFound as e:
        return json_error(404, str(e))
    return web.json_response({"order": order.to_dict()})


async def set_stage(request: web.Request) -> web.Response:
    body = await _json_body(request)
    if body is None or "stage" not in body:
        return json_error(400, "body must be a JSON object with 'stage'")

    order_id = _order_id(request)
    try:
        order = await _order_bot(request).admin_desk.change_stage(order_id, body["stage"])
    except OrderNotFound as e:
        return json_error(404, str(e))
    except (TerminalStage, InvalidStageTransition) as e:
        return json_error(409, str(e))

    logger.info(f"Admin {request['admin_id']} set order {order_id} to stage {int(order.stage)} via API")
    return web.json_response({"ok": True, "order": order.to_dict()})


async def send_link(request: web.Request) -> web.Response:
    body = await _json_body(request)
    link = body.get("link") if body is not None else None
    if not isinstance(link, str) or not link.strip():
        return json_error(400, "body must be a JSON object with a non-empty 'link'")

    order_id = _order_id(request)
    try:
        order = await _order_bot(request).admin_desk.send_delivery_link(order_id, link)
    except OrderNotFound as e:
        return json_error(404, str(e))

    logger.info(f"Admin {request['admin_id']} sent a delivery link for order {order_id} via API")
    return web.json_response({"ok": True, "order": order.to_dict()})


async def list_messages(request: web.Request) -> web.Response:
    try:
        messages = await _order_bot(request).ledger.messages(_order_id(request))
    except OrderNotFound as e:
        return json_error(404, str(e))
    return web.json_response({"messages": [message.to_dict() for message in messages]})


def setup_admin_api(
    app: web.Application,
    order_bot: OrderBot,
    admin_ids: list[int],
    verify_init_data: Callable[[str], int],
) -> None:
    """Mount the admin routes on an existing application."""
    app[ORDER_BOT_KEY] = order_bot
    app[ADMIN_IDS_KEY] = frozenset(admin_ids)
    app[VERIFIER_KEY] = verify_init_data
    app.middlewares.append(admin_auth)

    app.router.add_get(f"{API_PREFIX}/orders", list_orders)
    app.router.add_get(f"{API_PREFIX}/orders/{{order_id:\\d+}}", get_order)
    app.router.add_post(f"{API_PREFIX}/orders/{{order_id:\\d+}}/stage", set_stage)
    app.router.add_post(f"{API_PREFIX}/orders/{{order_id:\\d+}}/sendlink", send_link)
    app.router.add_get(f"{API_PREFIX}/orders/{{order_id:\\d+}}/messages", list_messages)


def create_web_app(
    order_bot: Optional[OrderBot] = None,
    admin_ids: Optional[list[int]] = None,
    verify_init_data: Optional[Callable[[str], int]] = None,
) -> web.Application:
    """Application with the health check and, when given a bot, the admin API."""
    app = web.Application()
    app.router.add_get("/", healthcheck)
    if order_bot is not None and verify_init_data is not None:
        setup_admin_api(app, order_bot, admin_ids or [], verify_init_data)
    return app
