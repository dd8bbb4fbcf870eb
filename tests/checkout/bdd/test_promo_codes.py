"""BDD tests for promo code handling."""

from decimal import Decimal

from pytest_bdd import parsers, scenarios, then, when

scenarios("features/promo_codes.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the promo code "{code}" is applied'))
def apply_promo(flow, run, code, error):
    result = run(flow.apply_promo(code))
    if not result.success:
        error["exc"] = result.error


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the active promo code is "{code}"'))
def active_promo_is(flow, code):
    assert flow.cart.promo is not None
    assert flow.cart.promo.code == code


@then("no promo code is active")
def no_active_promo(flow):
    assert flow.cart.promo is None


@then(parsers.cfparse('the discount is "{amount}"'))
def discount_is(flow, amount):
    assert flow.totals().discount.rounded().value == Decimal(amount)
