"""Shared BDD fixtures and step definitions for checkout."""

import asyncio
from datetime import date

import pytest
from pytest_bdd import given, parsers, then

from checkout.address.address import NewAddress
from checkout.errors import CheckoutError
from checkout.payment.payment import PaymentSelection
from checkout.session.session import CheckoutStep

MONDAY = date(2026, 10, 19)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def run():
    """Drive the async checkout API from synchronous steps."""
    with asyncio.Runner() as runner:
        yield runner.run


@pytest.fixture()
def error():
    """Container for a captured checkout error."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a new checkout", target_fixture="flow")
def new_checkout(flow, run):
    run(flow.begin())
    return flow


@given(parsers.cfparse('the cart holds {quantity:d} meals at "{price}" each'), target_fixture="flow")
def cart_with_meals(flow, run, make_item, quantity, price):
    result = run(flow.add_item(make_item(price=price, quantity=quantity)))
    assert result.success
    return flow


@given("the checkout is ready for payment", target_fixture="flow")
def ready_for_payment(flow, run):
    assert flow.advance()
    run(flow.add_address(NewAddress(street="12 Mill Lane", city="Springfield", state="IL", zip_code="62701")))
    run(flow.list_slots(MONDAY))
    flow.select_slot("2026-10-19-2000")
    flow.set_contact_phone("555-0100")
    assert flow.advance()
    flow.select_payment(PaymentSelection.cash_on_delivery())
    return flow


@given("the order was placed", target_fixture="flow")
def order_placed(flow, run):
    result = run(flow.place_order())
    assert result.success
    return flow


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the checkout is at the "{step}" step'))
def checkout_is_at(flow, step):
    assert flow.current_step == CheckoutStep(step)


@then(parsers.cfparse("the cart has {count:d} items"))
def cart_has_n_items(flow, count):
    assert len(flow.cart.items) == count


@then("the cart is empty")
def cart_is_empty(flow):
    assert flow.cart.items == ()


@then(parsers.cfparse("the order service holds {count:d} order"))
def order_service_holds(order_service, count):
    assert len(order_service.orders) == count


@then("the checkout action fails with a checkout error")
def checkout_action_fails(error):
    assert error["exc"] is not None, "Expected a checkout error but none was raised"
    assert isinstance(error["exc"], CheckoutError)
