"""Fake chef capacity adapters for development and testing."""

import asyncio
import random
from datetime import date, datetime, time

from checkout.delivery.capacity_port import ChefCapacity


class RandomChefCapacity(ChefCapacity):
    """Each window independently has capacity with ``availability_ratio`` odds."""

    def __init__(self, availability_ratio: float = 0.7, seed: int | None = None):
        self.availability_ratio = availability_ratio
        self._random = random.Random(seed)

    async def available_windows(self, day: date, starts: list[datetime]) -> set[datetime]:
        return {start for start in starts if self._random.random() < self.availability_ratio}


class StaticChefCapacity(ChefCapacity):
    """Capacity with a fixed set of fully booked start times."""

    def __init__(self, booked: set[time] | None = None):
        self.booked: set[time] = set(booked or ())
        self.should_succeed = True
        self.latency: float = 0.0
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, latency: float = 0.0) -> None:
        self.should_succeed = should_succeed
        self.latency = latency

    async def available_windows(self, day: date, starts: list[datetime]) -> set[datetime]:
        self.calls.append({"day": day, "starts": list(starts)})
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.should_succeed:
            raise ConnectionError("Chef capacity service unavailable")
        return {start for start in starts if start.time() not in self.booked}
