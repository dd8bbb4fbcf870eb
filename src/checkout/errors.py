"""Checkout error taxonomy.

Every error is a Protean ``ValidationError``: it carries a ``messages`` dict
mapping a field (or a broad area such as ``"cart"``) to a list of
human-readable messages, so the UI layer can render any of them the same
way as a field-level validation failure.

Remote-call failures are caught at the CartStore and OrderPlacer boundaries
and handed back as values inside typed results. Only configuration problems
and programmer errors are raised.
"""

from enum import Enum

from protean.exceptions import ValidationError as DomainValidationError


class CheckoutError(DomainValidationError):
    """Base class for all checkout errors."""

    def __init__(self, messages: dict[str, list[str]] | str):
        if isinstance(messages, str):
            messages = {"_entity": [messages]}
        super().__init__(messages)
        self.messages = messages

    @property
    def message(self) -> str:
        """Flatten all messages into one line for notifications and logs."""
        return "; ".join(msg for msgs in self.messages.values() for msg in msgs)

    @classmethod
    def from_domain(cls, exc: DomainValidationError, field: str | None = None):
        """Translate a value object's invariant failure into a checkout error.

        With ``field`` set, every message is filed under that one field.
        """
        messages = dict(exc.messages)
        if field is not None:
            messages = {field: [msg for msgs in messages.values() for msg in msgs]}
        return cls(messages)


class ValidationError(CheckoutError):
    """User input failed a field-level rule. The form stays open."""


class PromoRejection(Enum):
    EMPTY_CODE = "Empty_Code"
    NOT_FOUND = "Not_Found"
    EXPIRED = "Expired"
    BELOW_MINIMUM = "Below_Minimum"


class PromoRejected(CheckoutError):
    """A promo code could not be applied. The cart is otherwise unaffected."""

    def __init__(self, code: str, reason: PromoRejection, message: str):
        self.code = code
        self.reason = reason
        super().__init__({"promo_code": [message]})


class CartSyncError(CheckoutError):
    """A mutation against the remote cart service failed."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__({"cart": [f"Could not {operation}: {reason}"]})


class PaymentTokenizationError(CheckoutError):
    """The payment processor refused to tokenize the entered card."""


class OrderPlacementError(CheckoutError):
    """The order could not be placed. The cart is preserved for a retry."""

    def __init__(self, reason: str, retryable: bool = True):
        self.reason = reason
        self.retryable = retryable
        super().__init__({"order": [reason]})


class IdempotencyConflict(OrderPlacementError):
    """The idempotency key is already in use: by an attempt still in flight,
    or by an earlier attempt with different order details.
    """


class FatalConfigError(CheckoutError):
    """Checkout configuration is missing or invalid. Checkout must not start."""


class InvalidOperationError(CheckoutError):
    """An operation was invoked in a state where it can never succeed."""
