"""Chef capacity port: which delivery windows the kitchens can still serve."""

from abc import ABC, abstractmethod
from datetime import date, datetime


class ChefCapacity(ABC):
    """Abstract interface for chef-side capacity lookups."""

    @abstractmethod
    async def available_windows(self, day: date, starts: list[datetime]) -> set[datetime]:
        """Return the subset of ``starts`` that still has capacity on ``day``."""
        ...
