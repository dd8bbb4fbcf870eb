"""Live checkout flows for the HTTP layer.

The registry is created by ``create_app()`` and stored on ``app.state``.
Collaborators that stand for shared back-end services (order service,
idempotency records, chef capacity, tokenizer) are shared by every flow;
the cart and the address book belong to one customer and are built per flow.

Flows are evicted a short while after they are placed, or once left idle,
so the registry only holds checkouts that are still in progress.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from checkout.address.address import InMemoryAddressBook
from checkout.cart.fake_adapter import InMemoryCartService
from checkout.config import CheckoutSettings
from checkout.delivery.capacity_port import ChefCapacity
from checkout.delivery.fake_capacity import RandomChefCapacity
from checkout.notifications.port import Notifier
from checkout.order.fake_adapter import InMemoryOrderService
from checkout.order.idempotency import IdempotencyStore, MemoryIdempotencyStore
from checkout.order.port import OrderService
from checkout.payment.fake_adapter import FakeTokenizer
from checkout.payment.port import PaymentTokenizer
from checkout.session.flow import CheckoutFlow
from checkout.session.session import CheckoutStep

logger = structlog.get_logger(__name__)


class UnknownCheckout(KeyError):
    """No live checkout has the given id."""


class CheckoutRegistry:
    def __init__(
        self,
        settings: CheckoutSettings,
        order_service: OrderService | None = None,
        idempotency_store: IdempotencyStore | None = None,
        capacity: ChefCapacity | None = None,
        tokenizer: PaymentTokenizer | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self.order_service = order_service or InMemoryOrderService()
        self.idempotency_store = idempotency_store or MemoryIdempotencyStore(clock=clock)
        self.capacity = capacity or RandomChefCapacity()
        self.tokenizer = tokenizer or FakeTokenizer()
        self.notifier = notifier
        self.clock = clock
        self._flows: dict[str, CheckoutFlow] = {}
        self._last_seen: dict[str, datetime] = {}
        self._idle_ttl = timedelta(seconds=settings.checkout_idle_seconds)
        self._placed_ttl = timedelta(seconds=settings.placed_retention_seconds)

    def create(self) -> CheckoutFlow:
        self.sweep()
        flow = CheckoutFlow(
            self.settings,
            cart_service=InMemoryCartService(),
            address_book=InMemoryAddressBook(),
            tokenizer=self.tokenizer,
            order_service=self.order_service,
            capacity=self.capacity,
            idempotency_store=self.idempotency_store,
            notifier=self.notifier,
            clock=self.clock,
        )
        self._flows[flow.id] = flow
        self._last_seen[flow.id] = self.clock()
        logger.info("checkout_created", session_id=flow.id)
        return flow

    def get(self, checkout_id: str) -> CheckoutFlow:
        self.sweep()
        try:
            flow = self._flows[checkout_id]
        except KeyError:
            raise UnknownCheckout(checkout_id) from None
        self._last_seen[checkout_id] = self.clock()
        return flow

    def discard(self, checkout_id: str) -> None:
        if checkout_id not in self._flows:
            raise UnknownCheckout(checkout_id)
        self._evict(checkout_id)

    def sweep(self) -> list[str]:
        """Evict placed checkouts and checkouts nobody has touched in a while.

        Returns the evicted ids.
        """
        now = self.clock()
        stale = [
            checkout_id
            for checkout_id, flow in self._flows.items()
            if now - self._last_seen[checkout_id] >= self._ttl_for(flow)
        ]
        for checkout_id in stale:
            self._evict(checkout_id)
        if stale:
            logger.info("checkouts_evicted", count=len(stale), remaining=len(self._flows))
        return stale

    def _ttl_for(self, flow: CheckoutFlow) -> timedelta:
        return self._placed_ttl if flow.current_step == CheckoutStep.PLACED else self._idle_ttl

    def _evict(self, checkout_id: str) -> None:
        flow = self._flows.pop(checkout_id)
        del self._last_seen[checkout_id]
        flow.detach()

    def __len__(self) -> int:
        return len(self._flows)
