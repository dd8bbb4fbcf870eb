"""Configurable fake tokenizer for development and testing.

Follows Stripe's test-mode conventions loosely: any well-formed card is
accepted unless the tokenizer is configured to decline.
"""

from uuid import uuid4

from checkout.payment.payment import CardEntry, SavedCard
from checkout.payment.port import PaymentTokenizer, TokenizationResult

_BRANDS = {"4": "Visa", "5": "Mastercard", "3": "American Express"}


class FakeTokenizer(PaymentTokenizer):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Your card was declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Your card was declined") -> None:
        """Configure tokenizer behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def tokenize(self, entry: CardEntry) -> TokenizationResult:
        digits = entry.number.get_secret_value().replace(" ", "")
        # Only non-sensitive fields are recorded.
        self.calls.append({"method": "tokenize", "last4": digits[-4:]})

        if not self.should_succeed:
            return TokenizationResult(success=False, failure_reason=self.failure_reason)

        card = SavedCard(
            id=f"card-{uuid4().hex[:8]}",
            brand=_BRANDS.get(digits[:1], "Card"),
            last4=digits[-4:],
            expiry=f"{entry.exp_month:02d}/{str(entry.exp_year)[-2:]}",
            token=f"pm_fake_{uuid4().hex[:16]}",
        )
        return TokenizationResult(success=True, card=card)
