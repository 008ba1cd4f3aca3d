"""Notifier factory.

Provides get_notifier() / set_notifier() to swap implementations.
"""

from commerce.notifications.fake_adapter import RecordingNotifier
from commerce.notifications.port import Notifier

_current_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Return the current notifier. Defaults to RecordingNotifier."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = RecordingNotifier()
    return _current_notifier


def set_notifier(notifier: Notifier) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None


__all__ = ["Notifier", "RecordingNotifier", "get_notifier", "reset_notifier", "set_notifier"]
