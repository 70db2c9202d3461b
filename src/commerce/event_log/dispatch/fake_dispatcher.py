"""Fake dispatcher that records envelopes for testing."""

from commerce.event_log.dispatch.port import EventDispatcher
from commerce.shared.errors import DispatchError


class FakeEventDispatcher(EventDispatcher):
    """Dispatcher that never processes anything; it only remembers what was sent."""

    def __init__(self):
        self.dispatched: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Event processor unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Event processor unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def dispatch(self, envelope: dict) -> dict:
        if not self.should_succeed:
            raise DispatchError(self.failure_reason)
        self.dispatched.append(envelope)
        return {"success": True}

    def event_types(self) -> list[str]:
        return [envelope["event_type"] for envelope in self.dispatched]

    def reset(self):
        self.dispatched.clear()
        self.should_succeed = True
        self.failure_reason = "Event processor unavailable"
