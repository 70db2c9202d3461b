"""Domain events for the EventLogEntry aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="EventLogEntry")
class EventRecorded:
    __version__ = 1

    event_id = Identifier(required=True)
    event_type = String(required=True)
    aggregate_id = Identifier(required=True)
    store_id = Identifier()
    recorded_at = DateTime(required=True)


@commerce.event(part_of="EventLogEntry")
class EventProcessed:
    __version__ = 1

    event_id = Identifier(required=True)
    event_type = String(required=True)
    handler_count = Integer(default=0)
    processed_at = DateTime(required=True)


@commerce.event(part_of="EventLogEntry")
class EventProcessingFailed:
    """Processing or dispatch failed; the retry sweep will pick the row up."""

    __version__ = 1

    event_id = Identifier(required=True)
    event_type = String(required=True)
    retry_count = Integer(default=0)
    error_message = Text()
    next_retry_at = DateTime()


@commerce.event(part_of="EventLogEntry")
class EventRetriesExhausted:
    """Terminal: the event will not be dispatched again without operator action."""

    __version__ = 1

    event_id = Identifier(required=True)
    event_type = String(required=True)
    retry_count = Integer(required=True)
    error_message = Text()
