"""Money value object for monetary amounts with currency.

The stored amount is a float, but all arithmetic goes through ``value``,
an exact decimal taken from the float's repr. Intermediate results (a
percentage of a subtotal, a tax amount) keep full precision until
``rounded()`` quantizes them to cents, half-up.

Pydantic models that embed money annotate the field with ``MoneyField``,
which accepts a ``Money`` or its ``{"amount", "currency"}`` dict form.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, String
from pydantic import PlainSerializer, PlainValidator

from checkout.domain import checkout
from checkout.errors import InvalidOperationError

CENT = Decimal("0.01")

VALID_CURRENCIES = frozenset(
    {
        "USD",
        "EUR",
        "GBP",
        "JPY",
        "CAD",
        "AUD",
        "CHF",
        "CNY",
        "INR",
        "MXN",
        "BRL",
        "KRW",
        "SGD",
        "HKD",
        "NOK",
        "SEK",
        "DKK",
        "NZD",
        "ZAR",
        "TWD",
    }
)


@checkout.value_object
class Money:
    """Value object representing a monetary amount with currency."""

    amount: Float(required=True)
    currency: String(max_length=3, default="USD")

    @invariant.post
    def currency_must_be_valid_iso_4217(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(amount=0.0, currency=currency)

    @classmethod
    def of(cls, amount, currency: str = "USD") -> "Money":
        return cls(amount=Decimal(str(amount)), currency=currency)

    @property
    def value(self) -> Decimal:
        # Decimal(2.99) would carry the binary representation error along.
        return Decimal(repr(float(self.amount)))

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise InvalidOperationError(f"Cannot combine {self.currency} with {other.currency}")

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.value + other.value, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.value - other.value, currency=self.currency)

    def __mul__(self, factor: int | Decimal) -> "Money":
        return Money(amount=self.value * Decimal(factor), currency=self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.value < other.value

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.value <= other.value

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.value > other.value

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.value >= other.value

    def percent(self, percent: int | Decimal) -> "Money":
        """Return ``percent`` percent of this amount, unrounded."""
        return Money(amount=self.value * Decimal(percent) / Decimal(100), currency=self.currency)

    def rounded(self) -> "Money":
        return Money(amount=self.value.quantize(CENT, rounding=ROUND_HALF_UP), currency=self.currency)

    def floor_at_zero(self) -> "Money":
        if self.value < 0:
            return Money.zero(self.currency)
        return self

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    def __str__(self) -> str:
        return f"{self.currency} {self.rounded().value.quantize(CENT)}"


def _as_money(value) -> Money:
    if isinstance(value, Money):
        return value
    if isinstance(value, dict) and "amount" in value:
        return Money(amount=Decimal(str(value["amount"])), currency=value.get("currency", "USD"))
    raise ValueError(f"Expected Money, got {type(value).__name__}")


def _money_to_dict(money: Money) -> dict[str, str]:
    return {"amount": str(money.value), "currency": money.currency}


MoneyField = Annotated[Money, PlainValidator(_as_money), PlainSerializer(_money_to_dict)]
