"""Delivery slots: time windows a customer can choose for delivery.

Each day offers fixed lunch and dinner windows. For today, windows that have
already started are left out. Windows the chefs cannot serve are still
listed but marked unavailable. An ASAP pseudo-slot is always offered at a
premium, arriving ``express_minutes`` from now.
"""

import asyncio
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from enum import Enum

import structlog
from pydantic import BaseModel

from checkout.config import CheckoutSettings
from checkout.delivery.capacity_port import ChefCapacity
from checkout.errors import ValidationError
from checkout.shared.money import Money, MoneyField

logger = structlog.get_logger(__name__)

ASAP_SLOT_ID = "asap"


class SlotBand(Enum):
    LUNCH = "Lunch"
    DINNER = "Dinner"
    EXPRESS = "Express"


DAILY_WINDOWS = (
    (time(11, 30), SlotBand.LUNCH),
    (time(12, 0), SlotBand.LUNCH),
    (time(12, 30), SlotBand.LUNCH),
    (time(13, 0), SlotBand.LUNCH),
    (time(13, 30), SlotBand.LUNCH),
    (time(18, 0), SlotBand.DINNER),
    (time(18, 30), SlotBand.DINNER),
    (time(19, 0), SlotBand.DINNER),
    (time(19, 30), SlotBand.DINNER),
    (time(20, 0), SlotBand.DINNER),
)


class DeliverySlot(BaseModel):
    model_config = {"frozen": True}

    id: str
    delivery_date: date
    time_label: str
    band: SlotBand
    # None for the ASAP slot, which starts whenever the order is placed.
    starts_at: datetime | None = None
    estimated_delivery_time: datetime
    is_available: bool = True
    extra_fee: MoneyField

    @property
    def is_express(self) -> bool:
        return self.band == SlotBand.EXPRESS

    def is_expired(self, now: datetime) -> bool:
        if self.starts_at is None:
            return now.date() > self.delivery_date
        return self.starts_at <= now

    def is_selectable(self, now: datetime) -> bool:
        return self.is_available and not self.is_expired(now)


def format_time_label(moment: datetime | time) -> str:
    """Render ``18:30`` as ``6:30 PM``."""
    return moment.strftime("%I:%M %p").lstrip("0")


class DeliverySlotCatalog:
    def __init__(
        self,
        settings: CheckoutSettings,
        capacity: ChefCapacity,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings
        self._capacity = capacity
        self._clock = clock

    def _fee(self, band: SlotBand) -> Money:
        fees = {
            SlotBand.LUNCH: self._settings.lunch_fee,
            SlotBand.DINNER: self._settings.dinner_fee,
            SlotBand.EXPRESS: self._settings.express_fee,
        }
        return Money(amount=fees[band], currency=self._settings.currency)

    def horizon(self) -> list[date]:
        """Bookable dates, starting today."""
        today = self._clock().date()
        return [today + timedelta(days=offset) for offset in range(self._settings.booking_horizon_days)]

    def in_horizon(self, day: date) -> bool:
        return day in self.horizon()

    def express_slot(self) -> DeliverySlot:
        now = self._clock()
        return DeliverySlot(
            id=ASAP_SLOT_ID,
            delivery_date=now.date(),
            time_label="ASAP",
            band=SlotBand.EXPRESS,
            estimated_delivery_time=now + timedelta(minutes=self._settings.express_minutes),
            is_available=True,
            extra_fee=self._fee(SlotBand.EXPRESS),
        )

    async def generate_slots(self, day: date) -> list[DeliverySlot]:
        """List the ASAP slot followed by the day's remaining windows."""
        now = self._clock()

        windows = []
        for start_time, band in DAILY_WINDOWS:
            starts_at = datetime.combine(day, start_time)
            # Skip past time slots
            if starts_at <= now:
                continue
            windows.append((starts_at, band))

        available = await self._available_windows(day, [starts_at for starts_at, _ in windows])
        lead = timedelta(minutes=self._settings.delivery_lead_minutes)

        slots = [self.express_slot()]
        for starts_at, band in windows:
            slots.append(
                DeliverySlot(
                    id=f"{day.isoformat()}-{starts_at.strftime('%H%M')}",
                    delivery_date=day,
                    time_label=format_time_label(starts_at),
                    band=band,
                    starts_at=starts_at,
                    estimated_delivery_time=starts_at + lead,
                    is_available=starts_at in available,
                    extra_fee=self._fee(band),
                )
            )
        return slots

    async def _available_windows(self, day: date, starts: list[datetime]) -> set[datetime]:
        if not starts:
            return set()
        try:
            return set(
                await asyncio.wait_for(
                    self._capacity.available_windows(day, starts),
                    timeout=self._settings.capacity_timeout_seconds,
                )
            )
        except TimeoutError:
            logger.warning(
                "slot_capacity_timeout",
                day=day.isoformat(),
                timeout=self._settings.capacity_timeout_seconds,
            )
        except Exception as exc:
            logger.warning("slot_capacity_failed", day=day.isoformat(), reason=str(exc))
        # Without a capacity answer no window can be promised.
        return set()

    def validate_selection(self, slot: DeliverySlot | None) -> ValidationError | None:
        """Return why ``slot`` cannot be used right now, or None if it can."""
        if slot is None:
            return ValidationError({"slot": ["Please choose a delivery time"]})
        if not slot.is_available:
            return ValidationError({"slot": [f"The {slot.time_label} slot is fully booked"]})
        if slot.is_expired(self._clock()):
            return ValidationError({"slot": [f"The {slot.time_label} slot has passed, please pick another time"]})
        return None
