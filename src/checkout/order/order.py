"""Order request payload and confirmation.

The request is a frozen snapshot of everything the customer chose at the
moment they confirmed: later edits to the session never leak into an order
that is already in flight.
"""

import hashlib
from datetime import datetime

from pydantic import BaseModel

from checkout.payment.payment import PaymentMethodKind, WalletProvider
from checkout.pricing.engine import OrderTotals
from checkout.shared.money import MoneyField


class OrderLine(BaseModel):
    model_config = {"frozen": True}

    meal_id: str
    chef_id: str
    chef_name: str
    name: str
    unit_price: MoneyField
    quantity: int
    special_instructions: str | None = None


class OrderRequest(BaseModel):
    model_config = {"frozen": True}

    address_id: str
    slot_id: str
    contact_phone: str
    payment_method: PaymentMethodKind
    payment_token: str | None = None
    wallet_provider: WalletProvider | None = None
    lines: tuple[OrderLine, ...]
    promo_code: str | None = None
    totals: OrderTotals
    estimated_delivery: datetime

    @property
    def chef_names(self) -> list[str]:
        names: list[str] = []
        for line in self.lines:
            if line.chef_name not in names:
                names.append(line.chef_name)
        return names

    def fingerprint(self) -> str:
        """Stable hash of what the customer ordered, used to detect a key reused
        with different input. The delivery estimate is left out since it moves
        with the clock for ASAP orders.
        """
        payload = self.model_dump_json(exclude={"estimated_delivery"})
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class OrderConfirmation(BaseModel):
    model_config = {"frozen": True}

    order_number: str
    estimated_delivery: datetime
    chefs: list[str]
    total: MoneyField
