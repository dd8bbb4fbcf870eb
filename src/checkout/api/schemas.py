"""Pydantic request/response schemas for the Checkout API.

These are external contracts, kept apart from the checkout's own types so
either can change without dragging the other along.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from checkout.address.address import Address, AddressType
from checkout.cart.cart import CartLineItem
from checkout.delivery.slots import DeliverySlot
from checkout.order.order import OrderConfirmation
from checkout.payment.payment import PaymentMethodKind, SavedCard, WalletProvider
from checkout.pricing.engine import OrderTotals
from checkout.session.flow import CheckoutFlow
from checkout.session.session import CheckoutStep
from checkout.shared.money import Money


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class MoneySchema(BaseModel):
    amount: str
    currency: str

    @classmethod
    def of(cls, money: Money) -> "MoneySchema":
        return cls(amount=f"{money.rounded().value:.2f}", currency=money.currency)


class LineItemSchema(BaseModel):
    id: str
    meal_id: str
    chef_name: str
    name: str
    unit_price: MoneySchema
    quantity: int
    line_total: MoneySchema
    special_instructions: str | None = None

    @classmethod
    def of(cls, item: CartLineItem) -> "LineItemSchema":
        return cls(
            id=item.id,
            meal_id=item.meal_id,
            chef_name=item.chef_name,
            name=item.name,
            unit_price=MoneySchema.of(item.unit_price),
            quantity=item.quantity,
            line_total=MoneySchema.of(item.line_total),
            special_instructions=item.special_instructions,
        )


class TotalsSchema(BaseModel):
    subtotal: MoneySchema
    discount: MoneySchema
    delivery_fee: MoneySchema
    tax: MoneySchema
    total: MoneySchema
    promo_active: bool
    free_delivery: bool

    @classmethod
    def of(cls, totals: OrderTotals) -> "TotalsSchema":
        return cls(
            subtotal=MoneySchema.of(totals.subtotal),
            discount=MoneySchema.of(totals.discount),
            delivery_fee=MoneySchema.of(totals.delivery_fee),
            tax=MoneySchema.of(totals.tax),
            total=MoneySchema.of(totals.total),
            promo_active=totals.promo_active,
            free_delivery=totals.free_delivery,
        )


class AddressSchema(BaseModel):
    id: str
    type: AddressType
    full_address: str
    is_default: bool

    @classmethod
    def of(cls, address: Address) -> "AddressSchema":
        return cls(id=address.id, type=address.type, full_address=address.full_address, is_default=address.is_default)


class SlotSchema(BaseModel):
    id: str
    delivery_date: date
    time_label: str
    band: str
    estimated_delivery_time: datetime
    is_available: bool
    extra_fee: MoneySchema

    @classmethod
    def of(cls, slot: DeliverySlot) -> "SlotSchema":
        return cls(
            id=slot.id,
            delivery_date=slot.delivery_date,
            time_label=slot.time_label,
            band=slot.band.value,
            estimated_delivery_time=slot.estimated_delivery_time,
            is_available=slot.is_available,
            extra_fee=MoneySchema.of(slot.extra_fee),
        )


class CardSchema(BaseModel):
    id: str
    brand: str
    last4: str
    expiry: str

    @classmethod
    def of(cls, card: SavedCard) -> "CardSchema":
        return cls(id=card.id, brand=card.brand, last4=card.last4, expiry=card.expiry)


class ConfirmationSchema(BaseModel):
    order_number: str
    estimated_delivery: datetime
    chefs: list[str]
    total: MoneySchema

    @classmethod
    def of(cls, confirmation: OrderConfirmation) -> "ConfirmationSchema":
        return cls(
            order_number=confirmation.order_number,
            estimated_delivery=confirmation.estimated_delivery,
            chefs=confirmation.chefs,
            total=MoneySchema.of(confirmation.total),
        )


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class AddItemRequest(BaseModel):
    meal_id: str
    chef_id: str
    chef_name: str
    name: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    special_instructions: str | None = None
    image: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "meal_id": "meal-101",
                    "chef_id": "chef-7",
                    "chef_name": "Maria",
                    "name": "Chicken Biryani",
                    "unit_price": "12.50",
                    "quantity": 1,
                }
            ]
        }
    }


class UpdateItemRequest(BaseModel):
    # Anything below 1 removes the line.
    quantity: int | None = None
    special_instructions: str | None = None


class ApplyPromoRequest(BaseModel):
    code: str


class CreateAddressRequest(BaseModel):
    type: AddressType = AddressType.HOME
    street: str
    apartment: str | None = None
    city: str
    state: str
    zip_code: str
    instructions: str | None = None
    is_default: bool = False


class SelectAddressRequest(BaseModel):
    address_id: str


class SelectSlotRequest(BaseModel):
    slot_id: str


class ContactPhoneRequest(BaseModel):
    phone: str


class SelectPaymentRequest(BaseModel):
    method_kind: PaymentMethodKind
    card_id: str | None = None
    wallet_provider: WalletProvider | None = None


class AddCardRequest(BaseModel):
    cardholder_name: str
    number: str
    exp_month: int = Field(ge=1, le=12)
    exp_year: int = Field(ge=2000)
    cvc: str


class JumpRequest(BaseModel):
    step: CheckoutStep


class ConfigureOrderServiceRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Payment was declined"
    network_error: bool = False
    lose_response: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CheckoutResponse(BaseModel):
    id: str
    step: CheckoutStep
    items: list[LineItemSchema]
    promo_code: str | None = None
    totals: TotalsSchema
    address: AddressSchema | None = None
    slot: SlotSchema | None = None
    contact_phone: str | None = None
    payment: str | None = None
    blocking: dict[str, list[str]] = {}
    confirmation: ConfirmationSchema | None = None

    @classmethod
    def of(cls, flow: CheckoutFlow) -> "CheckoutResponse":
        session = flow.session
        confirmation = session.confirmation
        slot = session.slot
        return cls(
            id=flow.id,
            step=flow.current_step,
            items=[LineItemSchema.of(item) for item in flow.cart.items],
            promo_code=flow.cart.promo.code if flow.cart.promo else None,
            totals=TotalsSchema.of(flow.totals()),
            address=AddressSchema.of(session.address) if session.address else None,
            slot=SlotSchema.of(slot) if slot else None,
            contact_phone=session.contact_phone,
            payment=session.payment.display_name if session.payment else None,
            blocking=flow.guard_errors(),
            confirmation=ConfirmationSchema.of(confirmation) if confirmation else None,
        )


class PlacementResponse(BaseModel):
    confirmation: ConfirmationSchema
    from_cache: bool = False


class OrderServiceConfigResponse(BaseModel):
    order_service: str
    should_succeed: bool
    network_error: bool
    lose_response: bool
