"""
Conversation steps and the transition table for order collection.
"""

from enum import Enum
from typing import Optional


class Step(Enum):
    """Where a customer is in the order flow."""

    IDLE = "idle"

    # Cart building
    CHOOSING_CATEGORY = "choosing_category"
    CHOOSING_AMOUNT = "choosing_amount"

    # Delivery profile
    AWAITING_NAME = "awaiting_name"
    AWAITING_PHONE = "awaiting_phone"
    AWAITING_LOCATION = "awaiting_location"

    # Payment
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_PAYMENT_PROOF = "awaiting_payment_proof"
    COMPLETE = "complete"

    # Side states
    CONTACTING_ADMIN = "contacting_admin"
    CANCELED = "canceled"


class Action(Enum):
    """Inputs the state machine understands."""

    START = "start"
    SELECT_CATEGORY = "select_category"
    SELECT_AMOUNT = "select_amount"
    ADD_TO_CART = "add_to_cart"
    CHECKOUT = "checkout"
    NAME_ENTERED = "name_entered"
    CONTACT_SHARED = "contact_shared"
    LOCATION_SHARED = "location_shared"
    PAYMENT_ACKNOWLEDGED = "payment_acknowledged"
    CANCEL = "cancel"
    PROOF_UPLOADED = "proof_uploaded"


# Steps in which a customer is building or finishing an order
ORDERING_STEPS = frozenset({
    Step.CHOOSING_CATEGORY,
    Step.CHOOSING_AMOUNT,
    Step.AWAITING_NAME,
    Step.AWAITING_PHONE,
    Step.AWAITING_LOCATION,
    Step.AWAITING_CONFIRMATION,
    Step.AWAITING_PAYMENT_PROOF,
})

# Steps gated by the shop being open
GATED_STEPS = frozenset({Step.CHOOSING_CATEGORY, Step.CHOOSING_AMOUNT})


TRANSITIONS: dict[tuple[Step, Action], Step] = {
    (Step.IDLE, Action.START): Step.CHOOSING_CATEGORY,
    (Step.IDLE, Action.SELECT_CATEGORY): Step.CHOOSING_AMOUNT,
    (Step.CHOOSING_CATEGORY, Action.SELECT_CATEGORY): Step.CHOOSING_AMOUNT,
    (Step.CHOOSING_CATEGORY, Action.CHECKOUT): Step.AWAITING_NAME,
    (Step.CHOOSING_AMOUNT, Action.SELECT_CATEGORY): Step.CHOOSING_AMOUNT,
    (Step.CHOOSING_AMOUNT, Action.SELECT_AMOUNT): Step.CHOOSING_AMOUNT,
    (Step.CHOOSING_AMOUNT, Action.ADD_TO_CART): Step.CHOOSING_AMOUNT,
    (Step.CHOOSING_AMOUNT, Action.CHECKOUT): Step.AWAITING_NAME,
    (Step.AWAITING_NAME, Action.NAME_ENTERED): Step.AWAITING_PHONE,
    (Step.AWAITING_PHONE, Action.CONTACT_SHARED): Step.AWAITING_LOCATION,
    (Step.AWAITING_LOCATION, Action.LOCATION_SHARED): Step.AWAITING_CONFIRMATION,
    (Step.AWAITING_CONFIRMATION, Action.PAYMENT_ACKNOWLEDGED): Step.AWAITING_PAYMENT_PROOF,
    (Step.AWAITING_CONFIRMATION, Action.CANCEL): Step.CANCELED,
    (Step.AWAITING_PAYMENT_PROOF, Action.PROOF_UPLOADED): Step.COMPLETE,
}


def next_step(step: Step, action: Action) -> Optional[Step]:
    """Target step for an action, or None when the step does not expect it."""
    return TRANSITIONS.get((step, action))


def accepts(step: Step, action: Action) -> bool:
    return (step, action) in TRANSITIONS
