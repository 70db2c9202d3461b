"""Event processing — the consumer side of the event log.

ProcessEvent is what ``POST /process-event`` and the local dispatcher run.
The entry is looked up (or inserted) by idempotency key, so a producer
that crashed before recording and a redelivered event both converge on a
single row. Completed events are acknowledged without running anything.
Handlers that already succeeded for the entry are not run again.
"""

import json
import time

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.config import get_settings
from commerce.domain import commerce
from commerce.event_log.entry import EventLogEntry, EventStatus
from commerce.event_log.handlers import handlers_for
from commerce.event_log.recording import find_entry_by_key

logger = structlog.get_logger(__name__)

PROCESSING_LEASE_SECONDS = 300


@commerce.command(part_of="EventLogEntry")
class ProcessEvent:
    event_type = String(required=True, max_length=100)
    aggregate_id = Identifier(required=True)
    aggregate_type = String(max_length=50)
    store_id = Identifier()
    payload_json = Text()
    worker_id = String(max_length=100)

    @classmethod
    def from_envelope(cls, envelope, worker_id=None):
        return cls(
            event_type=envelope["event_type"],
            aggregate_id=str(envelope["aggregate_id"]),
            aggregate_type=envelope.get("aggregate_type"),
            store_id=str(envelope["store_id"]) if envelope.get("store_id") else None,
            payload_json=json.dumps(envelope.get("payload") or {}),
            worker_id=worker_id,
        )


def _load_or_record(command, payload):
    entry = find_entry_by_key(command.event_type, command.aggregate_id)
    if entry is not None:
        return entry
    return EventLogEntry.record(
        event_type=command.event_type,
        aggregate_id=command.aggregate_id,
        store_id=command.store_id,
        payload=payload,
        aggregate_type=command.aggregate_type,
        max_retries=get_settings().event_max_retries,
    )


@commerce.command_handler(part_of=EventLogEntry)
class ProcessEventHandler:
    @handle(ProcessEvent)
    def process_event(self, command):
        payload = json.loads(command.payload_json) if command.payload_json else {}
        entry = _load_or_record(command, payload)
        log = logger.bind(event_id=str(entry.id), event_type=entry.event_type, aggregate_id=str(entry.aggregate_id))

        if entry.is_completed or entry.status == EventStatus.MAX_RETRIES_EXCEEDED.value:
            log.info("Event skipped", status=entry.status)
            return {"success": entry.is_completed, "skipped": True, "event_id": str(entry.id), "status": entry.status}

        entry.start_processing(worker_id=command.worker_id, lease_seconds=PROCESSING_LEASE_SECONDS)
        envelope = entry.envelope()
        already_done = entry.succeeded_handlers()

        results = []
        failures = []
        for name, handler in handlers_for(entry.event_type):
            if name in already_done:
                continue

            started = time.perf_counter()
            try:
                handler(envelope)
            except Exception as exc:
                duration_ms = int((time.perf_counter() - started) * 1000)
                log.warning("Event handler failed", handler=name, error=str(exc), duration_ms=duration_ms)
                entry.record_handler_run(name, succeeded=False, duration_ms=duration_ms, error_message=str(exc))
                failures.append(f"{name}: {exc}")
                results.append({"handler": name, "success": False, "error": str(exc)})
            else:
                duration_ms = int((time.perf_counter() - started) * 1000)
                entry.record_handler_run(name, succeeded=True, duration_ms=duration_ms)
                results.append({"handler": name, "success": True})

        if failures:
            entry.fail("; ".join(failures))
            log.warning("Event processing failed", failed_handlers=len(failures))
        else:
            entry.complete(handler_count=len(results))
            log.info("Event processed", handler_count=len(results))

        current_domain.repository_for(EventLogEntry).add(entry)
        return {
            "success": not failures,
            "skipped": False,
            "event_id": str(entry.id),
            "status": entry.status,
            "results": results,
        }
