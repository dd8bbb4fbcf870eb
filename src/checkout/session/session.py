"""CheckoutSession aggregate: the full in-progress state of one order attempt.

Cart items and the active promo are read through the CartStore, which is the
single source of truth for them, so the session never copies them. Every
other choice (address, slot, contact phone, payment) is an explicit optional
field set by its own step and validated on its own.
"""

from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import String, Text, ValueObject

from checkout.address.address import Address
from checkout.delivery.slots import DeliverySlot
from checkout.domain import checkout
from checkout.order.order import OrderConfirmation
from checkout.payment.payment import PaymentSelection
from checkout.shared.phone import PhoneNumber


class CheckoutStep(Enum):
    CART = "Cart"
    DELIVERY = "Delivery"
    PAYMENT = "Payment"
    PLACED = "Placed"


@checkout.aggregate
class CheckoutSession:
    address: ValueObject(Address)
    phone: ValueObject(PhoneNumber)
    delivery_slot: Text()  # JSON DeliverySlot
    payment_selection: Text()  # JSON PaymentSelection
    step: String(max_length=20, choices=CheckoutStep, default=CheckoutStep.CART.value)
    idempotency_key: String(max_length=64)
    order_confirmation: Text()  # JSON OrderConfirmation

    @invariant.post
    def placed_session_carries_its_confirmation(self):
        if self.step == CheckoutStep.PLACED.value and not self.order_confirmation:
            raise ValidationError({"step": ["A placed checkout must carry its order confirmation"]})

    @classmethod
    def start(cls, session_id: str | None = None) -> "CheckoutSession":
        return cls(id=session_id or str(uuid4()))

    # -------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------
    @property
    def current_step(self) -> CheckoutStep:
        return CheckoutStep(self.step)

    @property
    def slot(self) -> DeliverySlot | None:
        if not self.delivery_slot:
            return None
        return DeliverySlot.model_validate_json(self.delivery_slot)

    @property
    def payment(self) -> PaymentSelection | None:
        if not self.payment_selection:
            return None
        return PaymentSelection.model_validate_json(self.payment_selection)

    @property
    def contact_phone(self) -> str | None:
        return self.phone.number if self.phone else None

    @property
    def confirmation(self) -> OrderConfirmation | None:
        if not self.order_confirmation:
            return None
        return OrderConfirmation.model_validate_json(self.order_confirmation)

    # -------------------------------------------------------------------
    # Step data
    # -------------------------------------------------------------------
    def select_address(self, address: Address | None) -> None:
        self.address = address

    def select_slot(self, slot: DeliverySlot | None) -> None:
        self.delivery_slot = slot.model_dump_json() if slot is not None else None

    def set_contact_phone(self, phone: str) -> None:
        """Store a validated contact phone. Raises ValidationError."""
        self.phone = PhoneNumber.parse(phone)

    def select_payment(self, payment: PaymentSelection | None) -> None:
        """Store a payment selection. Raises ValidationError if incomplete."""
        if payment is not None:
            payment.validate_fields()
        self.payment_selection = payment.model_dump_json() if payment is not None else None

    # -------------------------------------------------------------------
    # Step and placement bookkeeping
    # -------------------------------------------------------------------
    def move_to(self, step: CheckoutStep) -> None:
        self.step = step.value

    def record_placement(self, confirmation: OrderConfirmation) -> None:
        """Enter Placed together with the confirmation that justifies it."""
        with atomic_change(self):
            self.order_confirmation = confirmation.model_dump_json()
            self.step = CheckoutStep.PLACED.value

    def record_confirmation(self, confirmation: OrderConfirmation) -> None:
        self.order_confirmation = confirmation.model_dump_json()

    def ensure_idempotency_key(self) -> str:
        """Return this attempt's idempotency key, generating it once."""
        if self.idempotency_key is None:
            self.idempotency_key = f"chk-{uuid4().hex}"
        return self.idempotency_key

    def retire_idempotency_key(self) -> None:
        """The next submission gets a fresh key."""
        self.idempotency_key = None

    def reset(self) -> None:
        """Forget every choice and start over at the cart step."""
        with atomic_change(self):
            self.address = None
            self.phone = None
            self.delivery_slot = None
            self.payment_selection = None
            self.step = CheckoutStep.CART.value
            self.idempotency_key = None
            self.order_confirmation = None
