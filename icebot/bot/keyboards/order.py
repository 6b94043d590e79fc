"""
Keyboards for the order flow.
"""

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)
from aiogram.utils.keyboard import InlineKeyboardBuilder

from icebot.core.orders.models import OrderStage


# Callback data
CATEGORY_PREFIX = "cat:"
AMOUNT_PREFIX = "amt:"
ADD_TO_CART = "cart:add"
VIEW_CART = "cart:view"
CHECKOUT = "cart:checkout"
MORE_CATEGORIES = "cart:more"
PAY = "order:pay"
CANCEL = "order:cancel"
CONTACT_ADMIN = "support"
RECEIVED_PREFIX = "received:"
ADMIN_STAGE_PREFIX = "admin:stage:"


def get_categories_keyboard(categories: list[str]) -> InlineKeyboardMarkup:
    """One button per product category."""
    builder = InlineKeyboardBuilder()
    for category in categories:
        builder.row(
            InlineKeyboardButton(
                text=f"🧊 {category.title()}",
                callback_data=f"{CATEGORY_PREFIX}{category}",
            ),
        )
    builder.row(
        InlineKeyboardButton(text="🛒 View cart", callback_data=VIEW_CART),
        InlineKeyboardButton(text="💬 Contact admin", callback_data=CONTACT_ADMIN),
    )
    return builder.as_markup()


def get_amounts_keyboard(amounts: list[str]) -> InlineKeyboardMarkup:
    """Amount options for the chosen category, three per row."""
    builder = InlineKeyboardBuilder()
    for amount in amounts:
        builder.button(text=amount, callback_data=f"{AMOUNT_PREFIX}{amount}")
    builder.adjust(3)
    builder.row(
        InlineKeyboardButton(text="⬅️ Categories", callback_data=MORE_CATEGORIES),
    )
    return builder.as_markup()


def get_cart_actions_keyboard() -> InlineKeyboardMarkup:
    """Shown after an amount is picked."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="➕ Add to cart", callback_data=ADD_TO_CART),
    )
    builder.row(
        InlineKeyboardButton(text="🧊 More items", callback_data=MORE_CATEGORIES),
        InlineKeyboardButton(text="🛒 View cart", callback_data=VIEW_CART),
    )
    builder.row(
        InlineKeyboardButton(text="✅ Checkout", callback_data=CHECKOUT),
    )
    return builder.as_markup()


def get_share_contact_keyboard() -> ReplyKeyboardMarkup:
    """Reply keyboard asking Telegram for the user's phone number."""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text="📱 Share Phone Number", request_contact=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def get_share_location_keyboard() -> ReplyKeyboardMarkup:
    """Reply keyboard asking Telegram for the delivery location."""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text="📍 Share Location", request_location=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def get_remove_keyboard() -> ReplyKeyboardRemove:
    return ReplyKeyboardRemove()


def get_confirmation_keyboard() -> InlineKeyboardMarkup:
    """Final confirmation before payment."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Confirm & Pay", callback_data=PAY),
        InlineKeyboardButton(text="❌ Cancel", callback_data=CANCEL),
    )
    return builder.as_markup()


def get_received_keyboard(order_id: int) -> InlineKeyboardMarkup:
    """Lets the customer confirm delivery."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text="📦 Mark as received",
            callback_data=f"{RECEIVED_PREFIX}{order_id}",
        ),
    )
    return builder.as_markup()


def get_admin_order_keyboard(order_id: int) -> InlineKeyboardMarkup:
    """Stage shortcuts under an order announcement."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text="🚚 Out for delivery",
            callback_data=f"{ADMIN_STAGE_PREFIX}{order_id}:{int(OrderStage.OUT_FOR_DELIVERY)}",
        ),
        InlineKeyboardButton(
            text="✅ Delivered",
            callback_data=f"{ADMIN_STAGE_PREFIX}{order_id}:{int(OrderStage.COMPLETED)}",
        ),
    )
    builder.row(
        InlineKeyboardButton(
            text="❌ Cancel order",
            callback_data=f"{ADMIN_STAGE_PREFIX}{order_id}:{int(OrderStage.CANCELED)}",
        ),
    )
    return builder.as_markup()
