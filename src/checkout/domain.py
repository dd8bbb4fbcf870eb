"""Checkout bounded context: the Protean domain that owns the checkout model."""

from protean.domain import Domain

from checkout.utils.logging import get_logger

logger = get_logger(__name__)

checkout = Domain(name="checkout")
