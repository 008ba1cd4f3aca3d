"""Recording notifier for development and testing."""

from commerce.notifications.port import Notifier


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []
        self.should_fail: bool = False

    def configure(self, should_fail: bool) -> None:
        self.should_fail = should_fail

    def send(self, event_type: str, payload: dict) -> None:
        if self.should_fail:
            raise ConnectionError("Notification service unreachable")
        self.sent.append((event_type, payload))

    def events_of(self, event_type: str) -> list[dict]:
        return [payload for sent_type, payload in self.sent if sent_type == event_type]
