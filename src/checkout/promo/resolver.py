"""Promo code resolution against the offer catalog.

Codes below their minimum order are rejected at apply time rather than
stored as "applied but inactive". The pricing engine still re-checks the
minimum on every recompute, so a promo applied to a qualifying cart stops
discounting as soon as the cart drops below the minimum.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

import structlog

from checkout.errors import PromoRejected, PromoRejection
from checkout.promo.offers import DEFAULT_OFFERS, PromoOffer
from checkout.shared.money import Money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PromoResolution:
    """Result of resolving a promo code."""

    code: str
    offer: PromoOffer | None = None
    rejection: PromoRejected | None = None

    @property
    def accepted(self) -> bool:
        return self.offer is not None and self.rejection is None


class PromoCodeResolver:
    def __init__(
        self,
        offers: Iterable[PromoOffer] = DEFAULT_OFFERS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._offers = {offer.code.lower(): offer for offer in offers}
        self._today = today

    def lookup(self, code: str) -> PromoOffer | None:
        """Find an offer by code, ignoring case and surrounding whitespace."""
        return self._offers.get((code or "").strip().lower())

    def resolve(self, code: str, subtotal: Money) -> PromoResolution:
        normalized = (code or "").strip()

        if not normalized:
            return self._reject(normalized, PromoRejection.EMPTY_CODE, "Please enter a promo code")

        offer = self.lookup(normalized)
        if offer is None:
            return self._reject(normalized, PromoRejection.NOT_FOUND, "Invalid promo code. Please try again.")

        if offer.is_expired(self._today()):
            return self._reject(offer.code, PromoRejection.EXPIRED, "Promo code has expired")

        if not offer.is_met_by(subtotal):
            return self._reject(
                offer.code,
                PromoRejection.BELOW_MINIMUM,
                f"Minimum order of {offer.min_order_amount} required for {offer.code}",
            )

        logger.info("promo_resolved", code=offer.code, discount_percent=str(offer.discount_percent))
        return PromoResolution(code=offer.code, offer=offer)

    def _reject(self, code: str, reason: PromoRejection, message: str) -> PromoResolution:
        logger.info("promo_rejected", code=code, reason=reason.value)
        return PromoResolution(code=code, rejection=PromoRejected(code, reason, message))
