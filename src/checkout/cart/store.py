"""CartStore: the client's view of the remote cart.

Every mutation is sent to the cart service and then followed by a re-fetch
of the authoritative cart; the mutation's own response is ignored so that
client and server totals cannot drift apart. Mutations are serialized with
a per-store lock: a "remove" and a "quantity update" issued close together
are applied and reconciled strictly one after the other.

Failures of the remote service never escape as exceptions. They come back
as ``CartResult`` values carrying a ``CartSyncError`` (or a
``ValidationError`` / ``PromoRejected`` for problems caught locally), and
the local view is left at the last authoritative state.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from checkout.cart.cart import MAX_INSTRUCTIONS_LENGTH, CartLineItem, CartSnapshot, NewLineItem
from checkout.cart.port import CartService
from checkout.errors import CartSyncError, CheckoutError, ValidationError
from checkout.notifications.fake_notifier import LoggingNotifier
from checkout.notifications.port import Notifier
from checkout.promo.offers import PromoOffer
from checkout.promo.resolver import PromoCodeResolver
from checkout.shared.money import Money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartResult:
    """Outcome of a CartStore operation."""

    success: bool
    cart: CartSnapshot
    error: CheckoutError | None = None
    # The store was detached while the call was in flight; local state was
    # left untouched.
    discarded: bool = False


class CartStore:
    def __init__(
        self,
        service: CartService,
        resolver: PromoCodeResolver,
        notifier: Notifier | None = None,
        currency: str = "USD",
        max_instructions_length: int = MAX_INSTRUCTIONS_LENGTH,
    ) -> None:
        self._service = service
        self._resolver = resolver
        self._notifier = notifier or LoggingNotifier()
        self._currency = currency
        self._max_instructions_length = max_instructions_length
        self._snapshot = CartSnapshot.empty()
        self._lock = asyncio.Lock()
        self._generation = 0

    # -------------------------------------------------------------------
    # Reads (synchronous, never suspend)
    # -------------------------------------------------------------------
    @property
    def snapshot(self) -> CartSnapshot:
        return self._snapshot

    @property
    def items(self) -> tuple[CartLineItem, ...]:
        return self._snapshot.items

    @property
    def promo(self) -> PromoOffer | None:
        return self._snapshot.promo

    @property
    def subtotal(self) -> Money:
        return self._snapshot.subtotal(self._currency)

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    async def refresh(self) -> CartResult:
        """Re-read the authoritative cart."""
        async with self._lock:
            return await self._refetch("load your cart", self._generation)

    async def add(self, item: NewLineItem) -> CartResult:
        return await self._mutate("add the item", lambda: self._service.add_item(item))

    async def update_quantity(self, item_id: str, quantity: int) -> CartResult:
        """Change a line's quantity. Anything below 1 removes the line."""
        if quantity < 1:
            return await self.remove(item_id)
        return await self._mutate(
            "update the quantity",
            lambda: self._service.update_item(item_id, quantity=quantity),
        )

    async def remove(self, item_id: str) -> CartResult:
        return await self._mutate("remove the item", lambda: self._service.remove_item(item_id))

    async def update_instructions(self, item_id: str, text: str | None) -> CartResult:
        text = text or ""
        if len(text) > self._max_instructions_length:
            error = ValidationError(
                {
                    "special_instructions": [
                        f"Special instructions must be at most {self._max_instructions_length} characters"
                    ]
                }
            )
            return CartResult(success=False, cart=self._snapshot, error=error)

        return await self._mutate(
            "update the instructions",
            lambda: self._service.update_item(item_id, special_instructions=text),
        )

    async def clear(self) -> CartResult:
        return await self._mutate("clear the cart", self._service.clear_cart)

    # -------------------------------------------------------------------
    # Promo management
    # -------------------------------------------------------------------
    async def apply_promo(self, code: str) -> CartResult:
        """Apply a promo code, replacing any active promo."""
        async with self._lock:
            resolution = self._resolver.resolve(code, self.subtotal)
            if not resolution.accepted:
                return CartResult(success=False, cart=self._snapshot, error=resolution.rejection)

            replaced = self.promo.code if self.promo else None
            result = await self._mutate_locked(
                "apply the promo code",
                lambda: self._service.apply_promo(resolution.offer.code),
            )

        if result.success and not result.discarded:
            logger.info("promo_applied", code=resolution.offer.code, replaced=replaced)
            self._notifier.success(f"Promo code {resolution.offer.code} applied")
        return result

    async def remove_promo(self) -> CartResult:
        return await self._mutate("remove the promo code", self._service.remove_promo)

    # -------------------------------------------------------------------
    # Local state control
    # -------------------------------------------------------------------
    def detach(self) -> None:
        """Drop the local effect of any in-flight call.

        The remote call is not cancelled; the next ``refresh()`` picks up
        whatever the service ended up with.
        """
        self._generation += 1
        logger.debug("cart_store_detached", generation=self._generation)

    def discard(self) -> None:
        """Empty the local view without talking to the service."""
        self._snapshot = CartSnapshot.empty(version=self._snapshot.version)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    async def _mutate(self, operation: str, call: Callable[[], Awaitable[CartSnapshot]]) -> CartResult:
        async with self._lock:
            return await self._mutate_locked(operation, call)

    async def _mutate_locked(self, operation: str, call: Callable[[], Awaitable[CartSnapshot]]) -> CartResult:
        generation = self._generation
        try:
            await call()
        except Exception as exc:
            error = CartSyncError(operation, str(exc) or type(exc).__name__)
            logger.warning("cart_mutation_failed", operation=operation, reason=error.reason)
            self._notifier.error(error.message)
            # Best effort: show whatever the service now considers the truth.
            await self._refetch(operation, generation, notify=False)
            return CartResult(success=False, cart=self._snapshot, error=error)

        result = await self._refetch(operation, generation)
        if result.success:
            logger.debug("cart_mutation_applied", operation=operation, version=result.cart.version)
        return result

    async def _refetch(self, operation: str, generation: int, notify: bool = True) -> CartResult:
        try:
            snapshot = await self._service.get_cart()
        except Exception as exc:
            error = CartSyncError(operation, str(exc) or type(exc).__name__)
            logger.warning("cart_refresh_failed", operation=operation, reason=error.reason)
            if notify:
                self._notifier.error(error.message)
            return CartResult(success=False, cart=self._snapshot, error=error)

        if generation != self._generation:
            logger.debug("cart_result_discarded", operation=operation, version=snapshot.version)
            return CartResult(success=True, cart=self._snapshot, discarded=True)

        if snapshot.version < self._snapshot.version:
            logger.debug("cart_snapshot_stale", received=snapshot.version, current=self._snapshot.version)
        else:
            self._snapshot = snapshot
        return CartResult(success=True, cart=self._snapshot)
