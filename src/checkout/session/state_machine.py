"""Checkout step sequencing.

State Machine:
    CART → DELIVERY → PAYMENT → PLACED (terminal)
    DELIVERY → CART, PAYMENT → DELIVERY (back, always allowed)

Forward moves are gated on the current step's predicate; a failed guard is a
no-op that reports its reasons, never an exception. Going back keeps every
later choice intact. Only a successful order placement reaches PLACED.
"""

from collections.abc import Callable

import structlog

from checkout.cart.store import CartStore
from checkout.delivery.slots import DeliverySlot
from checkout.errors import InvalidOperationError, ValidationError
from checkout.order.order import OrderConfirmation
from checkout.session.session import CheckoutSession, CheckoutStep

logger = structlog.get_logger(__name__)

_STEP_ORDER = [CheckoutStep.CART, CheckoutStep.DELIVERY, CheckoutStep.PAYMENT, CheckoutStep.PLACED]

_FORWARD = {
    CheckoutStep.CART: CheckoutStep.DELIVERY,
    CheckoutStep.DELIVERY: CheckoutStep.PAYMENT,
}

_BACK = {
    CheckoutStep.DELIVERY: CheckoutStep.CART,
    CheckoutStep.PAYMENT: CheckoutStep.DELIVERY,
}

SlotValidator = Callable[[DeliverySlot | None], ValidationError | None]


class CheckoutStateMachine:
    def __init__(
        self, session: CheckoutSession, cart: CartStore, slot_validator: SlotValidator | None = None
    ) -> None:
        self._session = session
        self.cart = cart
        self._slot_validator = slot_validator

    @property
    def current_step(self) -> CheckoutStep:
        return self._session.current_step

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def guard_errors(self, step: CheckoutStep | None = None) -> dict[str, list[str]]:
        """Unmet predicates for leaving ``step`` (default: the current step)."""
        step = step or self.current_step
        session = self._session
        errors: dict[str, list[str]] = {}

        if step == CheckoutStep.CART:
            if not self.cart.items:
                errors["cart"] = ["Your cart is empty"]

        elif step == CheckoutStep.DELIVERY:
            if session.address is None:
                errors["address"] = ["Please choose a delivery address"]
            if self._slot_validator is not None:
                slot_error = self._slot_validator(session.slot)
                if slot_error is not None:
                    errors.update(slot_error.messages)
            elif session.slot is None:
                errors["slot"] = ["Please choose a delivery time"]
            if not session.contact_phone:
                errors["contact_phone"] = ["Contact phone number is required"]

        elif step == CheckoutStep.PAYMENT:
            if session.payment is None:
                errors["payment"] = ["Please choose a payment method"]
            else:
                errors.update(session.payment.errors())

        return errors

    def can_advance(self) -> bool:
        return self.current_step in _FORWARD and not self.guard_errors()

    def ready_to_place(self) -> bool:
        """At PAYMENT with every step's guard still holding."""
        if self.current_step != CheckoutStep.PAYMENT:
            return False
        return not any(self.guard_errors(step) for step in (CheckoutStep.CART, CheckoutStep.DELIVERY, CheckoutStep.PAYMENT))

    def placement_errors(self) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        for step in (CheckoutStep.CART, CheckoutStep.DELIVERY, CheckoutStep.PAYMENT):
            errors.update(self.guard_errors(step))
        return errors

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def advance(self) -> bool:
        """Move to the next step if the current step's guard holds."""
        current = self.current_step
        if current not in _FORWARD:
            return False

        errors = self.guard_errors()
        if errors:
            logger.info("step_blocked", session_id=self._session.id, step=current.value, fields=sorted(errors))
            return False

        self._move(_FORWARD[current])
        return True

    def back(self) -> bool:
        current = self.current_step
        if current not in _BACK:
            return False
        self._move(_BACK[current])
        return True

    def jump_to(self, step: CheckoutStep) -> bool:
        """Jump to the current step or an earlier one; never forward."""
        current = self.current_step
        if current == CheckoutStep.PLACED or step == CheckoutStep.PLACED:
            return False
        if _STEP_ORDER.index(step) > _STEP_ORDER.index(current):
            return False
        if step != current:
            self._move(step)
        return True

    def mark_placed(self, confirmation: OrderConfirmation) -> None:
        """Enter the terminal state after a successful order placement."""
        if not self.ready_to_place():
            raise InvalidOperationError(
                f"Cannot place an order from step {self.current_step.value} with unmet requirements"
            )
        self._session.record_placement(confirmation)
        logger.info(
            "step_changed",
            session_id=self._session.id,
            previous=CheckoutStep.PAYMENT.value,
            current=CheckoutStep.PLACED.value,
        )

    def reset(self) -> None:
        self._session.reset()

    def _move(self, target: CheckoutStep) -> None:
        previous = self._session.current_step
        self._session.move_to(target)
        logger.info("step_changed", session_id=self._session.id, previous=previous.value, current=target.value)
