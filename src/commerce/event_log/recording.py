"""Event recording — the producer side of the event log.

``append_event`` adds an entry inside the caller's unit of work, so a
business change and its event commit together. ``publish_event`` records
and immediately dispatches; a dispatch failure only marks the entry
failed for the retry sweep, it never reaches the caller.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.config import get_settings
from commerce.domain import commerce
from commerce.event_log.dispatch import get_dispatcher
from commerce.event_log.entry import EventLogEntry, idempotency_key_for
from commerce.shared.errors import IntegrationError

logger = structlog.get_logger(__name__)


def find_entry_by_key(event_type, aggregate_id):
    repo = current_domain.repository_for(EventLogEntry)
    key = idempotency_key_for(event_type, aggregate_id)
    existing = repo._dao.query.filter(idempotency_key=key).all().items
    return existing[0] if existing else None


def append_event(event_type, aggregate_id, store_id=None, payload=None, aggregate_type=None):
    """Add an entry for the event unless one with the same idempotency key exists.

    Returns the entry id.
    """
    existing = find_entry_by_key(event_type, aggregate_id)
    if existing is not None:
        logger.info(
            "Event already recorded",
            event_type=event_type,
            aggregate_id=str(aggregate_id),
            event_id=str(existing.id),
        )
        return str(existing.id)

    entry = EventLogEntry.record(
        event_type=event_type,
        aggregate_id=aggregate_id,
        store_id=store_id,
        payload=payload,
        aggregate_type=aggregate_type,
        max_retries=get_settings().event_max_retries,
    )
    current_domain.repository_for(EventLogEntry).add(entry)
    logger.info("Event recorded", event_type=event_type, aggregate_id=str(aggregate_id), event_id=str(entry.id))
    return str(entry.id)


@commerce.command(part_of="EventLogEntry")
class RecordEvent:
    event_type = String(required=True, max_length=100)
    aggregate_id = Identifier(required=True)
    store_id = Identifier()
    payload_json = Text()
    aggregate_type = String(max_length=50)


@commerce.command(part_of="EventLogEntry")
class MarkEventDispatchFailed:
    event_id = Identifier(required=True)
    error_message = Text(required=True)


@commerce.command_handler(part_of=EventLogEntry)
class EventRecordingHandler:
    @handle(RecordEvent)
    def record_event(self, command):
        payload = json.loads(command.payload_json) if command.payload_json else {}
        return append_event(
            event_type=command.event_type,
            aggregate_id=command.aggregate_id,
            store_id=command.store_id,
            payload=payload,
            aggregate_type=command.aggregate_type,
        )

    @handle(MarkEventDispatchFailed)
    def mark_dispatch_failed(self, command):
        repo = current_domain.repository_for(EventLogEntry)
        entry = repo.get(command.event_id)
        # The processor may have finished before the transport error surfaced
        if entry.is_completed:
            return
        entry.fail_dispatch(command.error_message)
        repo.add(entry)


def dispatch_event(event_id, error_prefix="Dispatch failed"):
    """Send a recorded event to the processor. Returns True when the call succeeded."""
    entry = current_domain.repository_for(EventLogEntry).get(event_id)
    if entry.is_completed:
        return True

    try:
        get_dispatcher().dispatch(entry.envelope())
        return True
    except IntegrationError as exc:
        reason = f"{error_prefix}: {exc}"
    except Exception as exc:
        logger.exception("Unexpected dispatch error", event_id=str(event_id))
        reason = f"{error_prefix}: {exc}"

    logger.warning("Event dispatch failed", event_id=str(event_id), event_type=entry.event_type, error=reason)
    current_domain.process(MarkEventDispatchFailed(event_id=str(event_id), error_message=reason), asynchronous=False)
    return False


def publish_event(event_type, aggregate_id, store_id=None, payload=None, aggregate_type=None):
    """Record an event and dispatch it right away. Returns the entry id."""
    event_id = current_domain.process(
        RecordEvent(
            event_type=event_type,
            aggregate_id=str(aggregate_id),
            store_id=str(store_id) if store_id else None,
            payload_json=json.dumps(payload or {}),
            aggregate_type=aggregate_type,
        ),
        asynchronous=False,
    )
    dispatch_event(event_id)
    return event_id
