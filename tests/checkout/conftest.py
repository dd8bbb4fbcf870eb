from datetime import datetime

import pytest
from protean.integrations.pytest import DomainFixture

from checkout.address.address import InMemoryAddressBook
from checkout.cart.cart import NewLineItem
from checkout.cart.fake_adapter import InMemoryCartService
from checkout.cart.store import CartStore
from checkout.config import CheckoutSettings
from checkout.delivery.fake_capacity import StaticChefCapacity
from checkout.notifications.fake_notifier import RecordingNotifier
from checkout.order.fake_adapter import InMemoryOrderService
from checkout.order.idempotency import MemoryIdempotencyStore
from checkout.payment.fake_adapter import FakeTokenizer
from checkout.promo.resolver import PromoCodeResolver
from checkout.session.flow import CheckoutFlow
from checkout.shared.money import Money

# Monday morning, before the first lunch window.
NOW = datetime(2026, 10, 19, 10, 0)


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def settings():
    return CheckoutSettings()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cart_service():
    return InMemoryCartService()


@pytest.fixture
def resolver():
    return PromoCodeResolver(today=lambda: NOW.date())


@pytest.fixture
def cart_store(cart_service, resolver, notifier):
    return CartStore(cart_service, resolver, notifier=notifier)


@pytest.fixture
def capacity():
    return StaticChefCapacity()


@pytest.fixture
def order_service():
    return InMemoryOrderService(seed=7)


@pytest.fixture
def idempotency_store(clock):
    return MemoryIdempotencyStore(clock=clock)


@pytest.fixture
def tokenizer():
    return FakeTokenizer()


@pytest.fixture
def address_book():
    return InMemoryAddressBook()


@pytest.fixture
def flow(settings, cart_service, address_book, tokenizer, order_service, capacity, idempotency_store, notifier, clock):
    return CheckoutFlow(
        settings,
        cart_service=cart_service,
        address_book=address_book,
        tokenizer=tokenizer,
        order_service=order_service,
        capacity=capacity,
        idempotency_store=idempotency_store,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def make_item():
    def _make(meal_id="meal-1", price="10.00", quantity=1, chef_id="chef-1", chef_name="Maria", **kwargs):
        return NewLineItem(
            meal_id=meal_id,
            chef_id=chef_id,
            chef_name=chef_name,
            name=kwargs.pop("name", f"Meal {meal_id}"),
            unit_price=Money.of(price),
            quantity=quantity,
            **kwargs,
        )

    return _make
