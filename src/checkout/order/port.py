"""Order submission port (abstract interface).

Adapters must honour the idempotency key: submitting the same key twice
returns the first order rather than creating a second one.
"""

from abc import ABC, abstractmethod

from checkout.order.order import OrderConfirmation, OrderRequest


class OrderRejected(Exception):
    """The order service refused the order (decline, sold-out meal, ...)."""

    def __init__(self, reason: str, retryable: bool = False):
        self.reason = reason
        self.retryable = retryable
        super().__init__(reason)


class OrderService(ABC):
    """Abstract order submission interface."""

    @abstractmethod
    async def create_order(self, request: OrderRequest, idempotency_key: str) -> OrderConfirmation:
        """Create the order. Raises OrderRejected or a transport error."""

    @abstractmethod
    async def settle_attempt(self, idempotency_key: str) -> OrderConfirmation | None:
        """Resolve an attempt whose outcome was never confirmed.

        Returns the order committed under the key, if there is one. Otherwise
        the key is voided so that a delayed submission can no longer create
        an order with it, and None is returned. Raises a transport error when
        the service cannot be reached.
        """
