"""Notification port: abstract interface for user-facing toasts.

Fire-and-forget: the checkout engine never reads a return value and a
failing notifier must not break checkout.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Abstract interface for success/error signals shown to the user."""

    @abstractmethod
    def success(self, message: str) -> None: ...

    @abstractmethod
    def error(self, message: str) -> None: ...
