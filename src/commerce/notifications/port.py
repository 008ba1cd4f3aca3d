"""Notification port (abstract interface).

Delivery (email, SMS) is owned by the notification service. The engine only
emits named events with a JSON-serialisable payload.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    @abstractmethod
    def send(self, event_type: str, payload: dict) -> None:
        """Emit one notification event. May raise; callers treat it as fire-and-forget."""
        ...
