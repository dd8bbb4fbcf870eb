"""Tests for PricingEngine totals."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from checkout.cart.cart import CartLineItem
from checkout.config import CheckoutSettings
from checkout.delivery.slots import DeliverySlot, SlotBand
from checkout.pricing.engine import PricingEngine
from checkout.promo.offers import PromoOffer
from checkout.shared.money import Money


def _line(price, quantity=1, line_id="line-1"):
    return CartLineItem(
        id=line_id,
        meal_id=f"meal-{line_id}",
        chef_id="chef-1",
        chef_name="Maria",
        name="Biryani",
        unit_price=Money.of(price),
        quantity=quantity,
    )


def _promo(code="SAVE15", percent="15", minimum="15", free_delivery=False):
    return PromoOffer(
        code=code,
        discount_percent=Decimal(percent),
        min_order_amount=Money.of(minimum),
        free_delivery=free_delivery,
    )


def _slot(fee="2.99"):
    starts = datetime(2026, 10, 19, 18, 30)
    return DeliverySlot(
        id="2026-10-19-1830",
        delivery_date=date(2026, 10, 19),
        time_label="6:30 PM",
        band=SlotBand.DINNER,
        starts_at=starts,
        estimated_delivery_time=starts,
        extra_fee=Money.of(fee),
    )


@pytest.fixture
def engine():
    return PricingEngine(CheckoutSettings())


class TestEndToEndScenario:
    def test_two_meals_with_save15_and_dinner_slot(self, engine):
        totals = engine.compute_totals([_line("10.00", 2)], _promo(), _slot("2.99"))

        assert totals.subtotal == Money.of("20.00")
        assert totals.discount == Money.of("3.00")
        assert totals.delivery_fee == Money.of("2.99")
        assert totals.tax == Money.of("1.75")
        assert totals.total == Money.of("21.74")
        assert totals.promo_active is True


class TestDeterminism:
    def test_same_inputs_same_totals(self, engine):
        items = [_line("12.49", 3, "a"), _line("7.35", 1, "b")]
        promo, slot = _promo(), _slot()

        assert engine.compute_totals(items, promo, slot) == engine.compute_totals(items, promo, slot)


class TestDiscountGating:
    def test_below_minimum_gives_no_discount(self, engine):
        totals = engine.compute_totals([_line("9.00", 2)], _promo(percent="50", minimum="20"))

        assert totals.subtotal == Money.of("18.00")
        assert totals.discount == Money.zero()
        assert totals.promo_active is False

    def test_exactly_minimum_gives_discount(self, engine):
        totals = engine.compute_totals([_line("10.00", 2)], _promo(percent="10", minimum="20"))
        assert totals.discount == Money.of("2.00")

    def test_no_promo_no_discount(self, engine):
        assert engine.compute_totals([_line("40.00")]).discount == Money.zero()


class TestDeliveryFee:
    def test_threshold_waives_slot_fee(self, engine):
        totals = engine.compute_totals([_line("25.00")], None, _slot("4.99"))

        assert totals.delivery_fee == Money.zero()
        assert totals.free_delivery is True

    def test_just_below_threshold_charges_slot_fee(self, engine):
        totals = engine.compute_totals([_line("24.99")], None, _slot("1.99"))
        assert totals.delivery_fee == Money.of("1.99")

    def test_default_fee_before_a_slot_is_chosen(self, engine):
        assert engine.compute_totals([_line("10.00")]).delivery_fee == Money.of("2.99")

    def test_free_delivery_promo(self, engine):
        freeship = _promo(code="FREESHIP", percent="0", minimum="0", free_delivery=True)
        totals = engine.compute_totals([_line("10.00")], freeship, _slot("4.99"))

        assert totals.delivery_fee == Money.zero()
        assert totals.discount == Money.zero()

    def test_free_delivery_promo_below_minimum_still_charges(self, engine):
        gated = _promo(code="SHIPFREE30", percent="0", minimum="30", free_delivery=True)
        totals = engine.compute_totals([_line("10.00")], gated, _slot("2.99"))
        assert totals.delivery_fee == Money.of("2.99")


class TestTax:
    def test_tax_is_on_pre_discount_subtotal(self, engine):
        totals = engine.compute_totals([_line("40.00")], _promo(percent="50", minimum="0"))

        assert totals.discount == Money.of("20.00")
        assert totals.tax == Money.of("3.50")

    def test_tax_rate_comes_from_settings(self):
        engine = PricingEngine(CheckoutSettings(tax_rate=Decimal("0.10")))
        assert engine.compute_totals([_line("10.00")]).tax == Money.of("1.00")


class TestTotal:
    def test_total_is_sum_of_rounded_components(self, engine):
        totals = engine.compute_totals([_line("3.33", 3)], _promo(percent="12.5", minimum="0"), _slot("1.99"))

        expected = totals.subtotal - totals.discount + totals.delivery_fee + totals.tax
        assert totals.total == expected

    def test_full_discount_leaves_fee_and_tax(self, engine):
        totals = engine.compute_totals([_line("10.00")], _promo(percent="100", minimum="0"))
        assert totals.total == Money.of("3.87")

    def test_empty_cart(self, engine):
        totals = engine.compute_totals([])
        assert totals.subtotal == Money.zero()
        assert totals.total == Money.of("2.99")
