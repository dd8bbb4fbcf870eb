"""Payment selections and saved cards.

Card numbers and CVCs never reach the checkout session. Raw card entry is
handed to the tokenizer, and only the opaque token it returns is kept.
"""

from enum import Enum

from pydantic import BaseModel, Field, SecretStr

from checkout.errors import ValidationError


class PaymentMethodKind(Enum):
    CARD = "Card"
    WALLET = "Wallet"
    CASH_ON_DELIVERY = "Cash_On_Delivery"


class WalletProvider(Enum):
    PAYPAL = "PayPal"
    APPLE_PAY = "Apple_Pay"
    GOOGLE_PAY = "Google_Pay"


class SavedCard(BaseModel):
    """A tokenized card the customer can pay with."""

    model_config = {"frozen": True}

    id: str
    brand: str
    last4: str = Field(pattern=r"^\d{4}$")
    expiry: str
    token: str


class CardEntry(BaseModel):
    """Card details as typed by the customer, passed straight to the tokenizer."""

    cardholder_name: str
    number: SecretStr
    exp_month: int = Field(ge=1, le=12)
    exp_year: int = Field(ge=2000)
    cvc: SecretStr

    def errors(self) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        if not self.cardholder_name.strip():
            errors["cardholder_name"] = ["Cardholder name is required"]
        digits = self.number.get_secret_value().replace(" ", "")
        if not digits.isdigit() or not 12 <= len(digits) <= 19:
            errors["number"] = ["Please enter a valid card number"]
        cvc = self.cvc.get_secret_value()
        if not cvc.isdigit() or len(cvc) not in (3, 4):
            errors["cvc"] = ["Please enter a valid security code"]
        return errors


class PaymentSelection(BaseModel):
    model_config = {"frozen": True}

    method_kind: PaymentMethodKind
    card_reference: str | None = None
    wallet_provider: WalletProvider | None = None
    # Display only; never used to charge.
    card_last4: str | None = None

    @classmethod
    def card(cls, saved_card: SavedCard) -> "PaymentSelection":
        return cls(
            method_kind=PaymentMethodKind.CARD,
            card_reference=saved_card.token,
            card_last4=saved_card.last4,
        )

    @classmethod
    def wallet(cls, provider: WalletProvider) -> "PaymentSelection":
        return cls(method_kind=PaymentMethodKind.WALLET, wallet_provider=provider)

    @classmethod
    def cash_on_delivery(cls) -> "PaymentSelection":
        return cls(method_kind=PaymentMethodKind.CASH_ON_DELIVERY)

    def errors(self) -> dict[str, list[str]]:
        if self.method_kind == PaymentMethodKind.CARD and not self.card_reference:
            return {"payment": ["Please add or choose a card"]}
        if self.method_kind == PaymentMethodKind.WALLET and self.wallet_provider is None:
            return {"payment": ["Please choose a wallet"]}
        return {}

    def validate_fields(self) -> None:
        errors = self.errors()
        if errors:
            raise ValidationError(errors)

    @property
    def display_name(self) -> str:
        if self.method_kind == PaymentMethodKind.CARD:
            return f"Card ending {self.card_last4}" if self.card_last4 else "Credit/Debit Card"
        if self.method_kind == PaymentMethodKind.WALLET and self.wallet_provider is not None:
            return self.wallet_provider.value.replace("_", " ")
        return "Cash on Delivery"
