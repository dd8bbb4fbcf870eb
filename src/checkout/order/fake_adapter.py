"""Configurable fake order service for development and testing.

Besides plain success and decline, it can simulate the ambiguous case where
the order is committed but the response is lost on the way back, which is
exactly what the idempotency key protects against.
"""

import asyncio
import random

from checkout.order.order import OrderConfirmation, OrderRequest
from checkout.order.port import OrderRejected, OrderService


class InMemoryOrderService(OrderService):
    def __init__(self, seed: int | None = None) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment was declined"
        self.network_error: bool = False
        self.lose_response: bool = False
        self.latency: float = 0.0
        self.calls: list[dict] = []
        self.orders: list[OrderConfirmation] = []
        self._by_key: dict[str, OrderConfirmation] = {}
        self._voided: set[str] = set()
        self._random = random.Random(seed)

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Payment was declined",
        network_error: bool = False,
        lose_response: bool = False,
        latency: float = 0.0,
    ) -> None:
        """Configure service behavior at runtime.

        ``network_error`` fails before anything is committed; ``lose_response``
        commits the order and then fails as if the connection dropped.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.network_error = network_error
        self.lose_response = lose_response
        self.latency = latency

    def reset(self) -> None:
        self.configure()
        self.calls.clear()
        self.orders.clear()
        self._by_key.clear()
        self._voided.clear()

    async def create_order(self, request: OrderRequest, idempotency_key: str) -> OrderConfirmation:
        self.calls.append({"method": "create_order", "idempotency_key": idempotency_key, "slot_id": request.slot_id})
        if self.latency:
            await asyncio.sleep(self.latency)

        if self.network_error:
            raise ConnectionError("Order service unreachable")

        existing = self._by_key.get(idempotency_key)
        if existing is not None:
            return existing

        if idempotency_key in self._voided:
            raise OrderRejected("This order attempt was cancelled")

        if not self.should_succeed:
            raise OrderRejected(self.failure_reason)

        confirmation = OrderConfirmation(
            order_number=f"HC{self._random.randint(100000, 999999)}",
            estimated_delivery=request.estimated_delivery,
            chefs=request.chef_names,
            total=request.totals.total,
        )
        self._by_key[idempotency_key] = confirmation
        self.orders.append(confirmation)

        if self.lose_response:
            raise ConnectionError("Connection reset while reading the response")
        return confirmation

    async def settle_attempt(self, idempotency_key: str) -> OrderConfirmation | None:
        self.calls.append({"method": "settle_attempt", "idempotency_key": idempotency_key})
        if self.network_error:
            raise ConnectionError("Order service unreachable")

        existing = self._by_key.get(idempotency_key)
        if existing is None:
            self._voided.add(idempotency_key)
        return existing
