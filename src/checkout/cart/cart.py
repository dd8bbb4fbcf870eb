"""Cart line items and authoritative cart snapshots.

The remote cart service owns cart state. The client only ever holds a
``CartSnapshot`` returned by that service; snapshots are immutable and carry
a version so that a late response can never overwrite a newer one.
"""

from pydantic import BaseModel, Field

from checkout.promo.offers import PromoOffer
from checkout.shared.money import Money, MoneyField

MAX_INSTRUCTIONS_LENGTH = 200


class CartLineItem(BaseModel):
    """One meal in the cart, with its quantity and optional instructions."""

    model_config = {"frozen": True}

    id: str
    meal_id: str
    chef_id: str
    chef_name: str
    name: str
    unit_price: MoneyField
    quantity: int = Field(ge=1)
    special_instructions: str | None = Field(default=None, max_length=MAX_INSTRUCTIONS_LENGTH)
    image: str | None = None

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


class NewLineItem(BaseModel):
    """A meal the customer wants to add; the cart service assigns the line id."""

    model_config = {"frozen": True}

    meal_id: str
    chef_id: str
    chef_name: str
    name: str
    unit_price: MoneyField
    quantity: int = Field(default=1, ge=1)
    special_instructions: str | None = Field(default=None, max_length=MAX_INSTRUCTIONS_LENGTH)
    image: str | None = None


class CartSnapshot(BaseModel):
    """Authoritative cart state as last reported by the cart service."""

    model_config = {"frozen": True}

    items: tuple[CartLineItem, ...] = ()
    promo: PromoOffer | None = None
    version: int = 0

    @classmethod
    def empty(cls, version: int = 0) -> "CartSnapshot":
        return cls(version=version)

    def find(self, item_id: str) -> CartLineItem | None:
        return next((item for item in self.items if item.id == item_id), None)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def subtotal(self, currency: str = "USD") -> Money:
        total = Money.zero(currency)
        for item in self.items:
            total = total + item.line_total
        return total

    @property
    def chef_names(self) -> list[str]:
        """Distinct chef names, in the order their meals were added."""
        return list(dict.fromkeys(item.chef_name for item in self.items))
