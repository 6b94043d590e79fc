"""
Chat texts shown to customers and admins.
"""

WELCOME_MESSAGE = """👋 <b>Welcome to {shop_name}!</b>

Pick a category below to start your order.

<b>Commands:</b>
/cart — show your cart
/status — status of your latest order
/support — message the admin
/cancel — drop the current order"""


HELP_MESSAGE = """🤖 <b>How to order</b>

1. Pick a category and an amount
2. Add it to your cart (repeat for more items)
3. Checkout and share your name, phone and location
4. Confirm, pay, and upload the payment screenshot

<b>Commands:</b>
/start — start a new order
/cart — show your cart
/status — status of your latest order
/support — message the admin
/cancel — drop the current order"""


ADMIN_HELP_MESSAGE = """🛠 <b>Admin commands</b>

/open — accept new orders
/close — stop accepting new orders
/orders [limit] [stage] — recent orders
/order &lt;id&gt; — order details and conversation
/stage &lt;id&gt; &lt;stage&gt; — set stage (-1 canceled, 0 preparing, 1 out for delivery, 2 completed)
/link &lt;id&gt; &lt;url&gt; — send a delivery link (moves the order out for delivery)
/broadcast — the next message you send goes to every customer
/export — recent orders as an Excel file

Reply to an order or support message to answer that customer."""


SHOP_CLOSED = "🔒 Sorry, the shop is closed right now. Please check back later!"
USE_START = "Please follow the steps or /start to begin again."

CHOOSE_CATEGORY = "🧊 What would you like to order? Pick a category:"
CHOOSE_AMOUNT = "🧊 <b>{category}</b>\n\nPick an amount:"
UNKNOWN_CATEGORY = "⚠️ That category is not available. Please pick one from the list."
UNKNOWN_AMOUNT = "⚠️ That amount is not available for {category}."
AMOUNT_SELECTED = "Selected: <b>{category} — {amount}</b>\n\nAdd it to your cart or checkout."
ADDED_TO_CART = "✅ Added <b>{category} — {amount}</b> to your cart.\n\n🛒 <b>Cart:</b>\n{cart}"
SELECT_FIRST = "⚠️ Please select a category and amount first."
CART_EMPTY = "🛒 Your cart is empty. Please select a category and amount first."
CART_CONTENTS = "🛒 <b>Your cart:</b>\n{cart}"

ASK_NAME = "👤 Great! What name should we put on the order?"
ASK_NAME_AGAIN = "Please type your name."
ASK_PHONE = "Thanks, {name}! Now please share your phone number:"
ASK_PHONE_AGAIN = "Please tap the button below to share your phone number."
ASK_LOCATION = "Great 👍 Now share your delivery location:"
ASK_LOCATION_AGAIN = "Please tap the button below to share your delivery location."
LOCATION_RECEIVED = "📍 Location received."

ORDER_SUMMARY = """📋 <b>Order Summary</b>

🛒 <b>Items:</b>
{cart}

👤 Name: {name}
📱 Phone: {phone}
📍 Address: {address}
🗺️ Coordinates: {coordinates}"""

CONFIRM_WITH_BUTTONS = "Please tap the buttons (✅ / ❌) above to finish."
PAYMENT_REQUEST = "💳 <b>Payment</b>\n\n{instructions}"
UPLOAD_PROOF = "📸 Please upload a photo or file of your payment receipt."
ORDER_CANCELED = "❌ Order canceled. Send /start whenever you want to order again."
ORDER_PLACED = (
    "✅ <b>Order {order_number} received!</b>\n\n"
    "We are preparing it now. You'll get updates here.\n"
    "Use /status to check on it any time."
)

SUPPORT_PROMPT = "💬 Type your message for the admin:"
SUPPORT_SENT = "✅ Your message was sent to the admin. They will reply here."
SUPPORT_TEXT_ONLY = "Please type your message as text."
SUPPORT_UNAVAILABLE = "😔 The admin cannot be reached right now. Please try again later."

NO_ACTIVE_ORDER = "You have no active orders. Send /start to place one."
ORDER_STATUS = "📦 <b>Order {order_number}</b>\nStatus: <b>{status}</b>"

STAGE_UPDATES = {
    -1: "❌ Your order {order_number} was canceled. Contact us with /support if this is unexpected.",
    0: "🧊 Your order {order_number} is confirmed and being prepared.",
    1: "🚚 Your order {order_number} is out for delivery!",
    2: "✅ Your order {order_number} is completed. Thank you!",
}
DELIVERY_LINK_UPDATE = "🚚 Your order {order_number} is on the way!\n\nTrack it here: {link}"
RECEIVED_THANKS = "🙏 Thanks for confirming! Order {order_number} is completed."
ALREADY_CLOSED = "This order is already closed."
ORDER_NOT_YOURS = "That order could not be found."

# Admin side
ADMIN_NEW_ORDER = "🔔 <b>NEW ORDER</b>\n\n{summary}\n\n👤 Telegram: {customer}"
ADMIN_SUPPORT_MESSAGE = "💬 <b>Message from {customer}</b>{order}\n\n{text}"
ADMIN_PROOF_CAPTION = "🧾 Payment proof for order {order_number}"
ADMIN_RECEIVED = "📦 Customer marked order {order_number} as received."
ADMIN_SHOP_OPENED = "🟢 Shop is now OPEN."
ADMIN_SHOP_CLOSED = "🔴 Shop is now CLOSED."
ADMIN_BROADCAST_ARMED = "📣 Broadcast mode on. Your next message will be sent to all customers."
ADMIN_BROADCAST_DONE = "📣 Broadcast sent to {sent} customer(s), {failed} failed."
ADMIN_REPLY_SENT = "✅ Sent to customer."
ADMIN_REPLY_FAILED = "⚠️ Could not deliver the message to the customer."
ADMIN_CANNOT_MAP = "⚠️ Cannot map this reply to a customer."
ADMIN_ORDER_NOT_FOUND = "⚠️ Order not found."
ADMIN_TERMINAL = "⚠️ Order {order_id} is already {status}; its stage cannot change."
ADMIN_INVALID_STAGE = "⚠️ Order {order_id} cannot move from {current} to {requested}."
ADMIN_STAGE_SET = "✅ Order {order_number} → {status}"
ADMIN_LINK_SET = "✅ Delivery link sent for order {order_number} ({status})"
ADMIN_NO_ORDERS = "No orders yet."
ADMIN_USAGE = "Usage: {usage}"
ADMIN_HINT = "Reply to an order or support message to answer a customer. /help for commands."
