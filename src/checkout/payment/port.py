"""Payment tokenization port (abstract interface).

Adapters wrap a processor SDK (e.g. Stripe ``createPaymentMethod``) and turn
raw card entry into an opaque, reusable token.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from checkout.payment.payment import CardEntry, SavedCard


@dataclass(frozen=True)
class TokenizationResult:
    """Result of a tokenization attempt."""

    success: bool
    card: SavedCard | None = None
    failure_reason: str | None = None


class PaymentTokenizer(ABC):
    """Abstract payment tokenization interface."""

    @abstractmethod
    async def tokenize(self, entry: CardEntry) -> TokenizationResult: ...
