"""Cart service port (abstract interface).

Every operation returns the authoritative cart as stored by the service.
Implementations raise ``CartServiceUnavailable`` (or any exception) on
failure; the CartStore converts failures into ``CartSyncError`` results.
"""

from abc import ABC, abstractmethod

from checkout.cart.cart import CartSnapshot, NewLineItem


class CartServiceUnavailable(Exception):
    """The cart service could not complete the request."""


class CartService(ABC):
    """Abstract remote cart interface."""

    @abstractmethod
    async def get_cart(self) -> CartSnapshot: ...

    @abstractmethod
    async def add_item(self, item: NewLineItem) -> CartSnapshot:
        """Add a meal, or increase the quantity of a line for the same meal."""
        ...

    @abstractmethod
    async def update_item(
        self,
        item_id: str,
        quantity: int | None = None,
        special_instructions: str | None = None,
    ) -> CartSnapshot: ...

    @abstractmethod
    async def remove_item(self, item_id: str) -> CartSnapshot: ...

    @abstractmethod
    async def clear_cart(self) -> CartSnapshot:
        """Remove all items and the promo."""
        ...

    @abstractmethod
    async def apply_promo(self, code: str) -> CartSnapshot:
        """Attach a promo to the cart, replacing any active one."""
        ...

    @abstractmethod
    async def remove_promo(self) -> CartSnapshot: ...
