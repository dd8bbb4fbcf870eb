"""Tests for the in-memory idempotency store."""

from datetime import datetime, timedelta

import pytest

from checkout.order.idempotency import MemoryIdempotencyStore, RecordState
from checkout.order.order import OrderConfirmation
from checkout.shared.money import Money

TTL = timedelta(hours=1)


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 10, 19, 10, 0)

    def __call__(self):
        return self.now


def _confirmation():
    return OrderConfirmation(
        order_number="HC123456",
        estimated_delivery=datetime(2026, 10, 19, 19, 15),
        chefs=["Maria"],
        total=Money.of("21.74"),
    )


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def store(clock):
    return MemoryIdempotencyStore(clock=clock)


@pytest.mark.asyncio
class TestClaim:
    async def test_first_claim_succeeds(self, store):
        assert await store.claim("k1", "fp", TTL) is None

        record = await store.get("k1")
        assert record.state == RecordState.PENDING
        assert record.fingerprint == "fp"

    async def test_second_claim_returns_pending_record(self, store):
        await store.claim("k1", "fp", TTL)

        existing = await store.claim("k1", "fp", TTL)

        assert existing.state == RecordState.PENDING

    async def test_completed_key_cannot_be_reclaimed(self, store):
        await store.claim("k1", "fp", TTL)
        await store.complete("k1", _confirmation(), TTL)

        existing = await store.claim("k1", "fp", TTL)

        assert existing.state == RecordState.COMPLETED
        assert existing.confirmation.order_number == "HC123456"

    async def test_failed_key_can_be_retried(self, store):
        await store.claim("k1", "fp", TTL)
        await store.fail("k1", "timeout", TTL)

        assert await store.claim("k1", "fp", TTL) is None
        assert (await store.get("k1")).state == RecordState.PENDING

    async def test_failed_key_with_other_fingerprint_is_kept(self, store):
        await store.claim("k1", "fp", TTL)
        await store.fail("k1", "timeout", TTL)

        existing = await store.claim("k1", "other", TTL)

        assert existing.state == RecordState.FAILED
        assert existing.error == "timeout"


@pytest.mark.asyncio
class TestExpiry:
    async def test_expired_record_is_gone(self, store, clock):
        await store.claim("k1", "fp", TTL)
        clock.now += TTL

        assert await store.get("k1") is None
        assert await store.claim("k1", "fp", TTL) is None

    async def test_expired_records_are_swept_on_any_lookup(self, store, clock):
        for key in ("k1", "k2", "k3"):
            await store.claim(key, "fp", TTL)
        clock.now += TTL

        await store.get("unrelated")

        assert len(store) == 0

    async def test_sweep_keeps_live_records(self, store, clock):
        await store.claim("old", "fp", TTL)
        clock.now += timedelta(minutes=30)
        await store.claim("new", "fp", TTL)
        clock.now += timedelta(minutes=30)

        assert await store.claim("other", "fp", TTL) is None

        assert len(store) == 2
        assert await store.get("old") is None
        assert (await store.get("new")).state == RecordState.PENDING

    async def test_record_without_ttl_never_expires(self, store, clock):
        await store.claim("k1", "fp", None)
        clock.now += timedelta(days=365)

        assert await store.get("k1") is not None


@pytest.mark.asyncio
async def test_delete(store):
    await store.claim("k1", "fp", TTL)

    assert await store.delete("k1") is True
    assert await store.delete("k1") is False
