"""Idempotency records for order placement.

Lifecycle of a key:
    PENDING → COMPLETED (order created, confirmation cached)
            → FAILED    (attempt failed, the same key may be retried)
            → (expired)

Each record keeps a fingerprint of the payload it was claimed with, so a key
reused for a different order can be told apart from a genuine retry.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from checkout.order.order import OrderConfirmation


class RecordState(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass(frozen=True)
class IdempotencyRecord:
    key: str
    state: RecordState
    fingerprint: str
    created_at: datetime
    expires_at: datetime | None = None
    confirmation: OrderConfirmation | None = None
    error: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class IdempotencyStore(ABC):
    """Abstract idempotency record storage."""

    @abstractmethod
    async def get(self, key: str) -> IdempotencyRecord | None:
        """Return the live record for ``key``, or None."""

    @abstractmethod
    async def claim(self, key: str, fingerprint: str, ttl: timedelta | None) -> IdempotencyRecord | None:
        """Atomically mark ``key`` PENDING.

        Returns None when the claim succeeded, or the existing record that
        prevented it. A FAILED record claimed again with the same fingerprint
        does not prevent a claim.
        """

    @abstractmethod
    async def complete(self, key: str, confirmation: OrderConfirmation, ttl: timedelta | None) -> None: ...

    @abstractmethod
    async def fail(self, key: str, error: str, ttl: timedelta | None) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> bool: ...


class MemoryIdempotencyStore(IdempotencyStore):
    """Process-local store. Suitable for a single server process and tests."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._records: dict[str, IdempotencyRecord] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _expiry(self, ttl: timedelta | None) -> datetime | None:
        return self._clock() + ttl if ttl is not None else None

    def _sweep(self) -> None:
        """Drop every expired record, not just the one being looked up."""
        now = self._clock()
        for key in [key for key, record in self._records.items() if record.is_expired(now)]:
            del self._records[key]

    async def get(self, key: str) -> IdempotencyRecord | None:
        async with self._lock:
            self._sweep()
            return self._records.get(key)

    async def claim(self, key: str, fingerprint: str, ttl: timedelta | None) -> IdempotencyRecord | None:
        async with self._lock:
            self._sweep()
            existing = self._records.get(key)
            if existing is not None and existing.state != RecordState.FAILED:
                return existing
            if existing is not None and existing.fingerprint != fingerprint:
                return existing

            self._records[key] = IdempotencyRecord(
                key=key,
                state=RecordState.PENDING,
                fingerprint=fingerprint,
                created_at=self._clock(),
                expires_at=self._expiry(ttl),
            )
            return None

    async def complete(self, key: str, confirmation: OrderConfirmation, ttl: timedelta | None) -> None:
        async with self._lock:
            record = self._records[key]
            self._records[key] = replace(
                record,
                state=RecordState.COMPLETED,
                confirmation=confirmation,
                error=None,
                expires_at=self._expiry(ttl),
            )

    async def fail(self, key: str, error: str, ttl: timedelta | None) -> None:
        async with self._lock:
            record = self._records[key]
            self._records[key] = replace(record, state=RecordState.FAILED, error=error, expires_at=self._expiry(ttl))

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._records.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._records)
