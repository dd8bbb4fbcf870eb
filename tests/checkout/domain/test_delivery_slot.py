"""Tests for DeliverySlot expiry and labels."""

from datetime import date, datetime, time

from checkout.delivery.slots import DeliverySlot, SlotBand, format_time_label
from checkout.shared.money import Money


def _slot(starts_at=None, available=True, delivery_date=date(2026, 10, 19)):
    return DeliverySlot(
        id="asap" if starts_at is None else "slot-1",
        delivery_date=delivery_date,
        time_label="ASAP" if starts_at is None else format_time_label(starts_at),
        band=SlotBand.EXPRESS if starts_at is None else SlotBand.DINNER,
        starts_at=starts_at,
        estimated_delivery_time=starts_at or datetime(2026, 10, 19, 10, 30),
        is_available=available,
        extra_fee=Money.of("2.99"),
    )


class TestTimeLabel:
    def test_afternoon(self):
        assert format_time_label(time(18, 30)) == "6:30 PM"

    def test_late_morning(self):
        assert format_time_label(time(11, 30)) == "11:30 AM"


class TestExpiry:
    def test_window_expires_once_started(self):
        slot = _slot(datetime(2026, 10, 19, 18, 0))

        assert not slot.is_expired(datetime(2026, 10, 19, 17, 59))
        assert slot.is_expired(datetime(2026, 10, 19, 18, 0))

    def test_asap_expires_with_its_day(self):
        slot = _slot()

        assert not slot.is_expired(datetime(2026, 10, 19, 23, 59))
        assert slot.is_expired(datetime(2026, 10, 20, 0, 1))

    def test_fully_booked_slot_is_not_selectable(self):
        slot = _slot(datetime(2026, 10, 19, 18, 0), available=False)
        assert not slot.is_selectable(datetime(2026, 10, 19, 12, 0))

    def test_express(self):
        assert _slot().is_express
        assert not _slot(datetime(2026, 10, 19, 18, 0)).is_express
