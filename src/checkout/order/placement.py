"""OrderPlacer: submits a checkout session as an order, exactly once.

Placement sequence:
1. A completed idempotency record for the session's key short-circuits to
   the cached confirmation; the order service is not called again.
2. The state machine must be at Payment with every step's guard holding.
3. The payload is frozen from the session and priced at submission time.
4. The key is claimed PENDING, the order service is called with it, and the
   record is settled COMPLETED or FAILED.
5. On success the machine moves to Placed and the cart is cleared; on
   failure the machine stays at Payment and the cart is kept for a retry.

A definite rejection (decline, sold-out meal) retires the key so the next
attempt, likely with different details, gets a fresh one. A transport error
keeps the key: the order may have been committed, and retrying with the
same key lets the service return it instead of creating a second one.

If the customer changes the order after a transport error, the old key is
settled with the order service before anything new goes out. An order the
service did commit under it becomes this checkout's order; otherwise the
service voids the old key and the new details are submitted under a fresh
one.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from checkout.cart.store import CartStore
from checkout.config import CheckoutSettings
from checkout.errors import IdempotencyConflict, InvalidOperationError, OrderPlacementError
from checkout.notifications.fake_notifier import LoggingNotifier
from checkout.notifications.port import Notifier
from checkout.order.idempotency import IdempotencyRecord, IdempotencyStore, RecordState
from checkout.order.order import OrderConfirmation, OrderLine, OrderRequest
from checkout.order.port import OrderRejected, OrderService
from checkout.pricing.engine import PricingEngine
from checkout.session.session import CheckoutSession
from checkout.session.state_machine import CheckoutStateMachine

logger = structlog.get_logger(__name__)

UNCONFIRMED = "We couldn't confirm your order. Please check your connection and try again."


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of an order placement attempt."""

    success: bool
    confirmation: OrderConfirmation | None = None
    error: OrderPlacementError | None = None
    # The confirmation came from an earlier attempt with the same key.
    from_cache: bool = False


class OrderPlacer:
    def __init__(
        self,
        order_service: OrderService,
        idempotency_store: IdempotencyStore,
        pricing: PricingEngine,
        settings: CheckoutSettings,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._order_service = order_service
        self._store = idempotency_store
        self._pricing = pricing
        self._settings = settings
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._ttl = timedelta(seconds=settings.idempotency_ttl_seconds)

    async def place_order(
        self,
        session: CheckoutSession,
        machine: CheckoutStateMachine,
        idempotency_key: str | None = None,
    ) -> PlacementResult:
        key = idempotency_key or session.ensure_idempotency_key()

        record = await self._store.get(key)
        if record is not None and record.state == RecordState.COMPLETED:
            if not machine.ready_to_place() or self._same_order(session, machine, record):
                return await self._replay(session, machine, record)

        if not machine.ready_to_place():
            errors = machine.placement_errors()
            raise InvalidOperationError(
                {"order": [f"Order cannot be placed from step {machine.current_step.value}"], **errors}
            )

        request = self.build_request(session, machine.cart)
        fingerprint = request.fingerprint()

        existing = await self._store.claim(key, fingerprint, self._ttl)
        if existing is not None:
            if existing.state == RecordState.FAILED:
                return await self._settle_and_resubmit(session, machine, existing, request)
            return await self._resolve_existing(session, machine, existing, fingerprint)

        return await self._submit(session, machine, key, request)

    def _same_order(
        self, session: CheckoutSession, machine: CheckoutStateMachine, record: IdempotencyRecord
    ) -> bool:
        return self.build_request(session, machine.cart).fingerprint() == record.fingerprint

    def build_request(self, session: CheckoutSession, cart: CartStore) -> OrderRequest:
        """Freeze the session into an order payload priced right now."""
        address, slot, payment = session.address, session.slot, session.payment
        if address is None or slot is None or payment is None:
            raise InvalidOperationError("Address, delivery slot and payment must be chosen before ordering")

        if slot.starts_at is None:
            estimated_delivery = self._clock() + timedelta(minutes=self._settings.express_minutes)
        else:
            estimated_delivery = slot.estimated_delivery_time

        return OrderRequest(
            address_id=address.id,
            slot_id=slot.id,
            contact_phone=session.contact_phone or "",
            payment_method=payment.method_kind,
            payment_token=payment.card_reference,
            wallet_provider=payment.wallet_provider,
            lines=tuple(
                OrderLine(
                    meal_id=item.meal_id,
                    chef_id=item.chef_id,
                    chef_name=item.chef_name,
                    name=item.name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    special_instructions=item.special_instructions,
                )
                for item in cart.items
            ),
            promo_code=cart.promo.code if cart.promo else None,
            totals=self._pricing.compute_totals(cart.items, cart.promo, slot),
            estimated_delivery=estimated_delivery.replace(second=0, microsecond=0),
        )

    async def _submit(
        self,
        session: CheckoutSession,
        machine: CheckoutStateMachine,
        key: str,
        request: OrderRequest,
    ) -> PlacementResult:
        log = logger.bind(session_id=session.id, idempotency_key=key)
        log.info("order_submitting", total=str(request.totals.total), items=len(request.lines))

        try:
            confirmation = await self._order_service.create_order(request, key)
        except OrderRejected as exc:
            await self._store.fail(key, exc.reason, self._ttl)
            session.retire_idempotency_key()
            log.warning("order_rejected", reason=exc.reason)
            return self._failure(OrderPlacementError(exc.reason))
        except asyncio.CancelledError:
            await self._store.fail(key, "cancelled", self._ttl)
            raise
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            await self._store.fail(key, reason, self._ttl)
            log.warning("order_failed", reason=reason)
            return self._failure(OrderPlacementError(UNCONFIRMED))

        await self._store.complete(key, confirmation, self._ttl)
        log.info("order_placed", order_number=confirmation.order_number, total=str(confirmation.total))
        await self._finish(session, machine, confirmation)
        return PlacementResult(success=True, confirmation=confirmation)

    async def _settle_and_resubmit(
        self,
        session: CheckoutSession,
        machine: CheckoutStateMachine,
        record: IdempotencyRecord,
        request: OrderRequest,
    ) -> PlacementResult:
        """Settle a key whose last attempt failed in transit, then carry on."""
        log = logger.bind(session_id=session.id, idempotency_key=record.key)
        try:
            committed = await self._order_service.settle_attempt(record.key)
        except Exception as exc:
            log.warning("order_settle_failed", reason=str(exc) or type(exc).__name__)
            return self._failure(OrderPlacementError(UNCONFIRMED))

        if committed is not None:
            await self._store.complete(record.key, committed, self._ttl)
            log.info("order_recovered", order_number=committed.order_number)
            await self._finish(session, machine, committed)
            return PlacementResult(success=True, confirmation=committed, from_cache=True)

        log.info("order_attempt_voided")
        session.retire_idempotency_key()
        key = session.ensure_idempotency_key()
        fingerprint = request.fingerprint()

        existing = await self._store.claim(key, fingerprint, self._ttl)
        if existing is not None:
            return await self._resolve_existing(session, machine, existing, fingerprint)
        return await self._submit(session, machine, key, request)

    async def _resolve_existing(
        self,
        session: CheckoutSession,
        machine: CheckoutStateMachine,
        record: IdempotencyRecord,
        fingerprint: str,
    ) -> PlacementResult:
        if record.state == RecordState.PENDING:
            logger.info("order_duplicate_in_flight", session_id=session.id, key=record.key)
            return self._failure(IdempotencyConflict("Your order is already being placed"), notify=False)
        if record.fingerprint != fingerprint:
            logger.warning("order_idempotency_conflict", session_id=session.id, key=record.key)
            return self._failure(
                IdempotencyConflict("An order was already placed with different details", retryable=False)
            )
        return await self._replay(session, machine, record)

    async def _replay(
        self, session: CheckoutSession, machine: CheckoutStateMachine, record: IdempotencyRecord
    ) -> PlacementResult:
        logger.info("order_replayed", session_id=session.id, order_number=record.confirmation.order_number)
        if machine.ready_to_place():
            await self._finish(session, machine, record.confirmation)
        else:
            session.record_confirmation(record.confirmation)
        return PlacementResult(success=True, confirmation=record.confirmation, from_cache=True)

    async def _finish(
        self, session: CheckoutSession, machine: CheckoutStateMachine, confirmation: OrderConfirmation
    ) -> None:
        machine.mark_placed(confirmation)

        cleared = await machine.cart.clear()
        if not cleared.success:
            # The order exists; never leave its items in front of the customer.
            machine.cart.discard()

        self._notifier.success(f"Order {confirmation.order_number} placed")

    def _failure(self, error: OrderPlacementError, notify: bool = True) -> PlacementResult:
        if notify:
            self._notifier.error(error.message)
        return PlacementResult(success=False, error=error)
