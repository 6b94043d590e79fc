"""
Cart operations on a customer session.
"""

from collections.abc import Iterator

from icebot.core.orders.errors import EmptyCart, InvalidSelection
from icebot.core.orders.models import CartItem, Session


class CartView:
    """
    Numbered, read-only view over a session's cart.

    Each iteration starts from the first line again and reflects the cart as it
    is at that moment.
    """

    def __init__(self, session: Session):
        self._session = session

    def __iter__(self) -> Iterator[str]:
        for i, item in enumerate(self._session.cart, 1):
            yield f"{i}. {item.category} — {item.amount_label}"

    def __len__(self) -> int:
        return len(self._session.cart)

    def __bool__(self) -> bool:
        return bool(self._session.cart)

    def __str__(self) -> str:
        return "\n".join(self)


def add(session: Session, category: str | None, amount_label: str | None) -> CartItem:
    """Append one line to the cart."""
    category = (category or "").strip()
    amount_label = (amount_label or "").strip()
    if not category or not amount_label:
        raise InvalidSelection("Select a category and an amount first")

    item = CartItem(category=category, amount_label=amount_label)
    session.cart.append(item)
    return item


def view(session: Session) -> CartView:
    """Numbered lines of the cart."""
    return CartView(session)


def checkout(session: Session) -> list[CartItem]:
    """
    Make sure the cart can be checked out.

    Single-item flows that never pressed "add" still have their pending
    category/amount pair; it is added here so the order is not lost.

    Raises:
        EmptyCart: nothing in the cart and nothing pending
    """
    if not session.cart and session.category and session.selected_amount:
        add(session, session.category, session.selected_amount)
        session.selected_amount = None

    if not session.cart:
        raise EmptyCart("Nothing to check out")
    return session.cart
