"""Promo offers: immutable catalog entries describing a discount or benefit."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from checkout.shared.money import Money, MoneyField


class PromoOffer(BaseModel):
    """A named discount rule.

    ``min_order_amount`` is checked against the pre-discount subtotal both
    when the code is applied and every time totals are computed.
    """

    model_config = {"frozen": True}

    code: str = Field(min_length=1, max_length=100)
    discount_percent: Decimal = Field(ge=0, le=100)
    min_order_amount: MoneyField
    free_delivery: bool = False
    description: str = ""
    expires_on: date | None = None

    def is_met_by(self, subtotal: Money) -> bool:
        return subtotal >= self.min_order_amount

    def is_expired(self, today: date) -> bool:
        return self.expires_on is not None and today > self.expires_on


DEFAULT_OFFERS = (
    PromoOffer(
        code="WELCOME10",
        discount_percent=Decimal("10"),
        min_order_amount=Money.of("20.00"),
        description="Get 10% off your first order",
    ),
    PromoOffer(
        code="SAVE15",
        discount_percent=Decimal("15"),
        min_order_amount=Money.of("30.00"),
        description="15% off orders over 30",
    ),
    PromoOffer(
        code="FREESHIP",
        discount_percent=Decimal("0"),
        min_order_amount=Money.of("0.00"),
        free_delivery=True,
        description="Free delivery on any order",
    ),
)
