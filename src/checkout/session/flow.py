"""CheckoutFlow: one customer's walk through checkout.

Wires a CheckoutSession to the components that act on it. Every
collaborator is passed in; nothing here reaches for shared module state, so
two flows never see each other's cart or choices.
"""

from collections.abc import Callable
from datetime import date, datetime

import structlog

from checkout.address.address import Address, AddressBook, NewAddress
from checkout.cart.cart import NewLineItem
from checkout.cart.port import CartService
from checkout.cart.store import CartResult, CartStore
from checkout.config import CheckoutSettings
from checkout.delivery.capacity_port import ChefCapacity
from checkout.delivery.slots import DeliverySlot, DeliverySlotCatalog
from checkout.errors import PaymentTokenizationError, ValidationError
from checkout.notifications.fake_notifier import LoggingNotifier
from checkout.notifications.port import Notifier
from checkout.order.idempotency import IdempotencyStore, MemoryIdempotencyStore
from checkout.order.placement import OrderPlacer, PlacementResult
from checkout.order.port import OrderService
from checkout.payment.payment import CardEntry, PaymentSelection, SavedCard
from checkout.payment.port import PaymentTokenizer
from checkout.pricing.engine import OrderTotals, PricingEngine
from checkout.promo.resolver import PromoCodeResolver
from checkout.session.session import CheckoutSession, CheckoutStep
from checkout.session.state_machine import CheckoutStateMachine

logger = structlog.get_logger(__name__)


class CheckoutFlow:
    def __init__(
        self,
        settings: CheckoutSettings,
        cart_service: CartService,
        address_book: AddressBook,
        tokenizer: PaymentTokenizer,
        order_service: OrderService,
        capacity: ChefCapacity,
        idempotency_store: IdempotencyStore | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
        session_id: str | None = None,
    ) -> None:
        self.settings = settings
        self.notifier = notifier or LoggingNotifier()
        self._address_book = address_book
        self._tokenizer = tokenizer
        self._clock = clock

        resolver = PromoCodeResolver(today=lambda: clock().date())
        self.cart = CartStore(
            cart_service,
            resolver,
            notifier=self.notifier,
            currency=settings.currency,
            max_instructions_length=settings.max_instructions_length,
        )
        self.session = CheckoutSession.start(session_id)
        self.pricing = PricingEngine(settings)
        self.slots = DeliverySlotCatalog(settings, capacity, clock=clock)
        self.machine = CheckoutStateMachine(self.session, self.cart, slot_validator=self.slots.validate_selection)
        self.placer = OrderPlacer(
            order_service,
            idempotency_store or MemoryIdempotencyStore(clock=clock),
            self.pricing,
            settings,
            notifier=self.notifier,
            clock=clock,
        )

        self.saved_cards: list[SavedCard] = []
        self._listed_slots: dict[str, DeliverySlot] = {}
        self._addresses: dict[str, Address] = {}

    @property
    def id(self) -> str:
        return self.session.id

    @property
    def current_step(self) -> CheckoutStep:
        return self.machine.current_step

    async def begin(self) -> CartResult:
        """Enter checkout: load the cart and start at the cart step.

        A session left at Placed by a previous order starts over from
        scratch; otherwise earlier choices are kept.
        """
        if self.current_step == CheckoutStep.PLACED:
            self.session.reset()
            self._listed_slots.clear()
        else:
            self.machine.jump_to(CheckoutStep.CART)
        logger.info("checkout_started", session_id=self.id)
        return await self.cart.refresh()

    def totals(self) -> OrderTotals:
        return self.pricing.compute_totals(self.cart.items, self.cart.promo, self.session.slot)

    # -------------------------------------------------------------------
    # Cart step
    # -------------------------------------------------------------------
    async def add_item(self, item: NewLineItem) -> CartResult:
        return await self.cart.add(item)

    async def update_quantity(self, item_id: str, quantity: int) -> CartResult:
        return await self.cart.update_quantity(item_id, quantity)

    async def remove_item(self, item_id: str) -> CartResult:
        return await self.cart.remove(item_id)

    async def update_instructions(self, item_id: str, text: str | None) -> CartResult:
        return await self.cart.update_instructions(item_id, text)

    async def apply_promo(self, code: str) -> CartResult:
        return await self.cart.apply_promo(code)

    async def remove_promo(self) -> CartResult:
        return await self.cart.remove_promo()

    async def clear_cart(self) -> CartResult:
        """Empty the cart and drop every checkout choice with it."""
        result = await self.cart.clear()
        if result.success:
            self.session.reset()
        return result

    # -------------------------------------------------------------------
    # Delivery step
    # -------------------------------------------------------------------
    async def list_addresses(self) -> list[Address]:
        addresses = await self._address_book.list_addresses()
        self._addresses = {address.id: address for address in addresses}
        return addresses

    async def add_address(self, new_address: NewAddress) -> Address:
        """Save a new address and deliver to it. Raises ValidationError."""
        new_address.validate_fields()
        address = await self._address_book.create_address(new_address)
        self._addresses[address.id] = address
        self.session.select_address(address)
        return address

    async def select_address(self, address_id: str) -> Address:
        address = self._addresses.get(address_id)
        if address is None:
            await self.list_addresses()
            address = self._addresses.get(address_id)
        if address is None:
            raise ValidationError({"address": ["Please choose a delivery address"]})
        self.session.select_address(address)
        return address

    async def list_slots(self, day: date) -> list[DeliverySlot]:
        if not self.slots.in_horizon(day):
            raise ValidationError(
                {"date": [f"Delivery can be booked up to {self.settings.booking_horizon_days} days ahead"]}
            )
        slots = await self.slots.generate_slots(day)
        self._listed_slots.update({slot.id: slot for slot in slots})
        return slots

    def select_slot(self, slot_id: str) -> DeliverySlot:
        """Choose one of the listed slots. Raises ValidationError."""
        slot = self._listed_slots.get(slot_id)
        if slot is None:
            raise ValidationError({"slot": ["Please choose a delivery time"]})
        error = self.slots.validate_selection(slot)
        if error is not None:
            raise error
        self.session.select_slot(slot)
        return slot

    def set_contact_phone(self, phone: str) -> str:
        self.session.set_contact_phone(phone)
        return self.session.contact_phone

    # -------------------------------------------------------------------
    # Payment step
    # -------------------------------------------------------------------
    def select_payment(self, selection: PaymentSelection) -> None:
        self.session.select_payment(selection)

    async def add_card(self, entry: CardEntry) -> SavedCard:
        """Tokenize a new card and pay with it.

        Raises ValidationError for malformed entry and
        PaymentTokenizationError when the processor refuses the card.
        """
        errors = entry.errors()
        if errors:
            raise ValidationError(errors)

        try:
            result = await self._tokenizer.tokenize(entry)
        except Exception as exc:
            logger.warning("card_tokenization_failed", session_id=self.id, reason=str(exc))
            raise PaymentTokenizationError({"card": ["We couldn't verify your card. Please try again."]}) from exc

        if not result.success:
            logger.info("card_declined", session_id=self.id, reason=result.failure_reason)
            raise PaymentTokenizationError({"card": [result.failure_reason or "Your card was declined"]})

        self.saved_cards.append(result.card)
        self.session.select_payment(PaymentSelection.card(result.card))
        return result.card

    # -------------------------------------------------------------------
    # Navigation and placement
    # -------------------------------------------------------------------
    def guard_errors(self) -> dict[str, list[str]]:
        return self.machine.guard_errors()

    def advance(self) -> bool:
        return self.machine.advance()

    def back(self) -> bool:
        return self.machine.back()

    def jump_to(self, step: CheckoutStep) -> bool:
        return self.machine.jump_to(step)

    async def place_order(self) -> PlacementResult:
        return await self.placer.place_order(self.session, self.machine)

    def detach(self) -> None:
        """The customer navigated away; results still in flight are dropped."""
        self.cart.detach()
