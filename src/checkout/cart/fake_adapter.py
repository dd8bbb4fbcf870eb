"""In-memory cart service for development and testing.

Behaves like the HomeCook cart API: adding a meal already in the cart bumps
its quantity, clearing also drops the promo, and every call answers with the
full cart. It can be configured to fail or to answer slowly, which is how the
CartStore's reconciliation and serialization are exercised in tests.
"""

import asyncio
from collections.abc import Iterable
from uuid import uuid4

from checkout.cart.cart import CartLineItem, CartSnapshot, NewLineItem
from checkout.cart.port import CartService, CartServiceUnavailable
from checkout.promo.offers import DEFAULT_OFFERS, PromoOffer


class InMemoryCartService(CartService):
    def __init__(self, offers: Iterable[PromoOffer] = DEFAULT_OFFERS) -> None:
        self._offers = {offer.code.lower(): offer for offer in offers}
        self._items: list[CartLineItem] = []
        self._promo: PromoOffer | None = None
        self._version = 0
        self.should_succeed: bool = True
        self.failure_reason: str = "Cart service unavailable"
        self.latency: float = 0.0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Cart service unavailable",
        latency: float = 0.0,
    ) -> None:
        """Configure service behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.latency = latency

    async def _call(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.should_succeed:
            raise CartServiceUnavailable(self.failure_reason)

    def _snapshot(self) -> CartSnapshot:
        return CartSnapshot(items=tuple(self._items), promo=self._promo, version=self._version)

    def _commit(self) -> CartSnapshot:
        self._version += 1
        return self._snapshot()

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise CartServiceUnavailable("Cart item not found")

    async def get_cart(self) -> CartSnapshot:
        # Reads are never configured to fail; a failed mutation must still
        # be able to reconcile against the stored state.
        self.calls.append({"method": "get_cart"})
        return self._snapshot()

    async def add_item(self, item: NewLineItem) -> CartSnapshot:
        await self._call("add_item", meal_id=item.meal_id, quantity=item.quantity)

        for index, existing in enumerate(self._items):
            if existing.meal_id == item.meal_id:
                self._items[index] = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
                return self._commit()

        self._items.append(CartLineItem(id=f"line-{uuid4().hex[:8]}", **item.model_dump()))
        return self._commit()

    async def update_item(
        self,
        item_id: str,
        quantity: int | None = None,
        special_instructions: str | None = None,
    ) -> CartSnapshot:
        await self._call(
            "update_item",
            item_id=item_id,
            quantity=quantity,
            special_instructions=special_instructions,
        )
        if quantity is not None and quantity < 1:
            raise CartServiceUnavailable("Please provide a valid quantity")

        index = self._index_of(item_id)
        updates = {}
        if quantity is not None:
            updates["quantity"] = quantity
        if special_instructions is not None:
            updates["special_instructions"] = special_instructions or None
        self._items[index] = self._items[index].model_copy(update=updates)
        return self._commit()

    async def remove_item(self, item_id: str) -> CartSnapshot:
        await self._call("remove_item", item_id=item_id)
        del self._items[self._index_of(item_id)]
        return self._commit()

    async def clear_cart(self) -> CartSnapshot:
        await self._call("clear_cart")
        self._items = []
        self._promo = None
        return self._commit()

    async def apply_promo(self, code: str) -> CartSnapshot:
        await self._call("apply_promo", code=code)
        offer = self._offers.get(code.strip().lower())
        if offer is None:
            raise CartServiceUnavailable("Invalid promo code")
        self._promo = offer
        return self._commit()

    async def remove_promo(self) -> CartSnapshot:
        await self._call("remove_promo")
        self._promo = None
        return self._commit()

    def reset(self) -> None:
        """Clear stored state and recorded calls (useful between tests)."""
        self._items = []
        self._promo = None
        self._version = 0
        self.calls.clear()
        self.configure()
