"""PricingEngine: order totals from cart, promo and delivery slot.

Pure and deterministic: the same inputs always give the same totals, which
lets the UI recompute on every render and lets a server verify a
client-submitted total.

Rules:
    subtotal      = sum(unit_price * quantity)
    discount      = subtotal * discount_percent / 100, only while the
                    subtotal meets the promo's minimum order
    delivery_fee  = 0 with an active free-delivery promo or once the
                    subtotal reaches the free-delivery threshold; otherwise
                    the slot's fee (the default fee while no slot is chosen)
    tax           = subtotal * tax_rate, on the pre-discount subtotal
    total         = subtotal - discount + delivery_fee + tax, never below 0

Each component is rounded to cents before the total is summed, so the total
always equals the sum of the lines shown to the customer.
"""

from collections.abc import Iterable

from pydantic import BaseModel

from checkout.cart.cart import CartLineItem
from checkout.config import CheckoutSettings
from checkout.delivery.slots import DeliverySlot
from checkout.promo.offers import PromoOffer
from checkout.shared.money import Money, MoneyField


class OrderTotals(BaseModel):
    model_config = {"frozen": True}

    subtotal: MoneyField
    discount: MoneyField
    delivery_fee: MoneyField
    tax: MoneyField
    total: MoneyField
    # False when a promo is attached but its minimum order is not met.
    promo_active: bool = False
    free_delivery: bool = False


class PricingEngine:
    def __init__(self, settings: CheckoutSettings) -> None:
        self._settings = settings
        self._currency = settings.currency

    def _money(self, amount) -> Money:
        return Money(amount=amount, currency=self._currency)

    def compute_totals(
        self,
        cart_items: Iterable[CartLineItem],
        promo: PromoOffer | None = None,
        slot: DeliverySlot | None = None,
    ) -> OrderTotals:
        subtotal = Money.zero(self._currency)
        for item in cart_items:
            subtotal = subtotal + item.line_total
        subtotal = subtotal.rounded()

        promo_active = promo is not None and promo.is_met_by(subtotal)

        discount = subtotal.percent(promo.discount_percent).rounded() if promo_active else Money.zero(self._currency)

        free_delivery = (promo_active and promo.free_delivery) or subtotal >= self._money(
            self._settings.free_delivery_threshold
        )
        if free_delivery:
            delivery_fee = Money.zero(self._currency)
        elif slot is not None:
            delivery_fee = slot.extra_fee.rounded()
        else:
            delivery_fee = self._money(self._settings.default_delivery_fee).rounded()

        tax = (subtotal * self._settings.tax_rate).rounded()

        total = (subtotal - discount + delivery_fee + tax).floor_at_zero().rounded()

        return OrderTotals(
            subtotal=subtotal,
            discount=discount,
            delivery_fee=delivery_fee,
            tax=tax,
            total=total,
            promo_active=promo_active,
            free_delivery=free_delivery,
        )
