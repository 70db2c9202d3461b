"""Event dispatcher port — hands a recorded event to the event processor."""

from abc import ABC, abstractmethod


class EventDispatcher(ABC):
    @abstractmethod
    def dispatch(self, envelope: dict) -> dict:
        """Deliver one event envelope for processing.

        The envelope carries event_type, aggregate_type, aggregate_id,
        store_id and payload. Raises DispatchError when the processor could
        not be reached or rejected the event.
        """
        ...
