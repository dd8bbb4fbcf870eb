"""Tests for DeliverySlotCatalog generation and selection checks."""

from datetime import date, datetime, time, timedelta

import pytest

from checkout.config import CheckoutSettings
from checkout.delivery.fake_capacity import RandomChefCapacity, StaticChefCapacity
from checkout.delivery.slots import ASAP_SLOT_ID, DAILY_WINDOWS, DeliverySlotCatalog, SlotBand
from checkout.shared.money import Money

MONDAY = date(2026, 10, 19)


def _catalog(capacity=None, now=datetime(2026, 10, 19, 10, 0), **settings):
    return DeliverySlotCatalog(
        CheckoutSettings(**settings),
        capacity or StaticChefCapacity(),
        clock=lambda: now,
    )


@pytest.mark.asyncio
class TestGenerateSlots:
    async def test_asap_first_then_every_window(self):
        slots = await _catalog().generate_slots(MONDAY)

        assert slots[0].id == ASAP_SLOT_ID
        assert slots[0].band == SlotBand.EXPRESS
        assert len(slots) == 1 + len(DAILY_WINDOWS)

    async def test_slot_ids_and_labels(self):
        slots = await _catalog().generate_slots(MONDAY)
        dinner = next(slot for slot in slots if slot.id == "2026-10-19-1830")

        assert dinner.time_label == "6:30 PM"
        assert dinner.band == SlotBand.DINNER
        assert dinner.extra_fee == Money.of("2.99")
        assert dinner.estimated_delivery_time == datetime(2026, 10, 19, 19, 15)

    async def test_asap_arrives_after_express_minutes(self):
        asap = (await _catalog().generate_slots(MONDAY))[0]

        assert asap.estimated_delivery_time == datetime(2026, 10, 19, 10, 30)
        assert asap.extra_fee == Money.of("4.99")
        assert asap.is_available

    async def test_past_windows_skipped_today(self):
        slots = await _catalog(now=datetime(2026, 10, 19, 12, 45)).generate_slots(MONDAY)

        starts = [slot.starts_at.time() for slot in slots[1:]]
        assert time(12, 30) not in starts
        assert starts[0] == time(13, 0)

    async def test_window_starting_now_is_skipped(self):
        slots = await _catalog(now=datetime(2026, 10, 19, 18, 0)).generate_slots(MONDAY)
        assert slots[1].starts_at.time() == time(18, 30)

    async def test_future_day_lists_every_window(self):
        slots = await _catalog(now=datetime(2026, 10, 19, 21, 0)).generate_slots(MONDAY + timedelta(days=1))
        assert len(slots) == 1 + len(DAILY_WINDOWS)

    async def test_late_evening_leaves_only_asap(self):
        slots = await _catalog(now=datetime(2026, 10, 19, 21, 0)).generate_slots(MONDAY)
        assert [slot.id for slot in slots] == [ASAP_SLOT_ID]

    async def test_booked_windows_listed_as_unavailable(self):
        capacity = StaticChefCapacity(booked={time(18, 0), time(19, 0)})
        slots = await _catalog(capacity).generate_slots(MONDAY)

        unavailable = {slot.time_label for slot in slots if not slot.is_available}
        assert unavailable == {"6:00 PM", "7:00 PM"}

    async def test_random_capacity_is_reproducible_with_a_seed(self):
        first = await _catalog(RandomChefCapacity(seed=3)).generate_slots(MONDAY)
        second = await _catalog(RandomChefCapacity(seed=3)).generate_slots(MONDAY)

        assert [s.is_available for s in first] == [s.is_available for s in second]


@pytest.mark.asyncio
class TestCapacityFallback:
    async def test_timeout_marks_every_window_unavailable(self):
        capacity = StaticChefCapacity()
        capacity.configure(latency=0.5)

        slots = await _catalog(capacity, capacity_timeout_seconds=0.01).generate_slots(MONDAY)

        assert slots[0].is_available
        assert not any(slot.is_available for slot in slots[1:])

    async def test_capacity_failure_marks_every_window_unavailable(self):
        capacity = StaticChefCapacity()
        capacity.configure(should_succeed=False)

        slots = await _catalog(capacity).generate_slots(MONDAY)

        assert len(slots) == 1 + len(DAILY_WINDOWS)
        assert not any(slot.is_available for slot in slots[1:])

    async def test_capacity_not_asked_when_no_window_remains(self):
        capacity = StaticChefCapacity()
        await _catalog(capacity, now=datetime(2026, 10, 19, 22, 0)).generate_slots(MONDAY)
        assert capacity.calls == []


class TestHorizon:
    def test_seven_days_from_today(self):
        horizon = _catalog().horizon()

        assert horizon[0] == MONDAY
        assert horizon[-1] == MONDAY + timedelta(days=6)
        assert len(horizon) == 7

    def test_in_horizon(self):
        catalog = _catalog()
        assert catalog.in_horizon(MONDAY + timedelta(days=6))
        assert not catalog.in_horizon(MONDAY + timedelta(days=7))
        assert not catalog.in_horizon(MONDAY - timedelta(days=1))


@pytest.mark.asyncio
class TestValidateSelection:
    async def test_none(self):
        assert _catalog().validate_selection(None).messages == {"slot": ["Please choose a delivery time"]}

    async def test_available_future_slot_is_valid(self):
        catalog = _catalog()
        slot = (await catalog.generate_slots(MONDAY))[-1]
        assert catalog.validate_selection(slot) is None

    async def test_fully_booked(self):
        catalog = _catalog(StaticChefCapacity(booked={time(20, 0)}))
        slot = (await catalog.generate_slots(MONDAY))[-1]

        error = catalog.validate_selection(slot)
        assert error.messages == {"slot": ["The 8:00 PM slot is fully booked"]}

    async def test_expired_since_listing(self):
        slot = (await _catalog().generate_slots(MONDAY))[1]
        later = _catalog(now=datetime(2026, 10, 19, 11, 45))

        error = later.validate_selection(slot)
        assert "has passed" in error.message
