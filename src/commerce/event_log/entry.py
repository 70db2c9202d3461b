"""EventLogEntry aggregate — the outbox row for one domain event.

Producers append an entry per business fact (``order.created``,
``payment.paid``...). A processor runs the handlers registered for the
event type and records one HandlerRun per handler. Failed entries are
picked up by the retry sweep with exponential backoff until
``max_retries`` is reached.

State Machine:
    PENDING → PROCESSING → COMPLETED
    PENDING / PROCESSING → FAILED → PENDING (retry, backoff 5 × 3^n minutes)
    FAILED → MAX_RETRIES_EXCEEDED (terminal)
"""

import json
from datetime import timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from commerce.domain import commerce
from commerce.event_log.events import (
    EventProcessed,
    EventProcessingFailed,
    EventRecorded,
    EventRetriesExhausted,
)
from commerce.shared.clock import as_naive_utc, utc_now

DEFAULT_MAX_RETRIES = 3
PROCESSING_RETRY_DELAY_MINUTES = 5


class EventStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"


class HandlerRunStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def backoff_minutes(retry_count):
    """Delay before the next attempt once ``retry_count`` retries were made."""
    return 5 * 3**retry_count


def idempotency_key_for(event_type, aggregate_id):
    return f"{event_type}:{aggregate_id}"


@commerce.entity(part_of="EventLogEntry")
class HandlerRun:
    handler_name = String(required=True, max_length=100)
    status = String(choices=HandlerRunStatus, required=True)
    duration_ms = Integer(default=0)
    error_message = Text()
    ran_at = DateTime()


@commerce.aggregate
class EventLogEntry:
    event_type = String(required=True, max_length=100)
    aggregate_type = String(max_length=50)
    aggregate_id = Identifier(required=True)
    store_id = Identifier()
    payload = Text()  # JSON
    idempotency_key = String(required=True, max_length=255)

    status = String(choices=EventStatus, default=EventStatus.PENDING.value)
    retry_count = Integer(default=0, min_value=0)
    max_retries = Integer(default=DEFAULT_MAX_RETRIES, min_value=0)
    next_retry_at = DateTime()
    error_message = Text()
    processed_at = DateTime()

    lease_owner = String(max_length=100)
    lease_expires_at = DateTime()

    handler_runs = HasMany(HandlerRun)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def retries_within_limit(self):
        if (self.retry_count or 0) > (self.max_retries or 0):
            raise ValidationError({"retry_count": ["Retry count cannot exceed max_retries"]})

    @classmethod
    def record(
        cls,
        event_type,
        aggregate_id,
        store_id=None,
        payload=None,
        aggregate_type=None,
        max_retries=DEFAULT_MAX_RETRIES,
    ):
        now = utc_now()
        entry = cls(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
            store_id=str(store_id) if store_id else None,
            payload=json.dumps(payload or {}),
            idempotency_key=idempotency_key_for(event_type, aggregate_id),
            status=EventStatus.PENDING.value,
            retry_count=0,
            max_retries=max_retries,
            created_at=now,
            updated_at=now,
        )
        entry.raise_(
            EventRecorded(
                event_id=str(entry.id),
                event_type=event_type,
                aggregate_id=str(aggregate_id),
                store_id=str(store_id) if store_id else None,
                recorded_at=now,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def payload_data(self):
        return json.loads(self.payload) if self.payload else {}

    @property
    def is_completed(self):
        return self.status == EventStatus.COMPLETED.value

    @property
    def is_exhausted(self):
        return (self.retry_count or 0) >= (self.max_retries or 0)

    def succeeded_handlers(self):
        return {run.handler_name for run in self.handler_runs if run.status == HandlerRunStatus.SUCCEEDED.value}

    def is_leased_by_other(self, worker_id, now=None):
        if not self.lease_owner or self.lease_owner == worker_id:
            return False
        if self.lease_expires_at is None:
            return False
        return as_naive_utc(self.lease_expires_at) > as_naive_utc(now or utc_now())

    def envelope(self):
        """The wire shape sent to the event processor."""
        return {
            "event_type": self.event_type,
            "aggregate_type": self.aggregate_type,
            "aggregate_id": str(self.aggregate_id),
            "store_id": str(self.store_id) if self.store_id else None,
            "payload": self.payload_data,
        }

    # -------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------
    def start_processing(self, worker_id=None, lease_seconds=300, now=None):
        if self.status == EventStatus.MAX_RETRIES_EXCEEDED.value:
            raise ValidationError({"status": ["Event exceeded its retries and cannot be processed"]})
        if self.is_completed:
            raise ValidationError({"status": ["Event is already completed"]})

        now = now or utc_now()
        self.status = EventStatus.PROCESSING.value
        self.lease_owner = worker_id
        self.lease_expires_at = now + timedelta(seconds=lease_seconds)
        self.updated_at = now

    def record_handler_run(self, handler_name, succeeded, duration_ms, error_message=None):
        self.add_handler_runs(
            HandlerRun(
                handler_name=handler_name,
                status=(HandlerRunStatus.SUCCEEDED if succeeded else HandlerRunStatus.FAILED).value,
                duration_ms=duration_ms,
                error_message=error_message,
                ran_at=utc_now(),
            )
        )

    def complete(self, handler_count=0):
        now = utc_now()
        self.status = EventStatus.COMPLETED.value
        self.processed_at = now
        self.error_message = None
        self.next_retry_at = None
        self._release_lease()
        self.updated_at = now

        self.raise_(
            EventProcessed(
                event_id=str(self.id),
                event_type=self.event_type,
                handler_count=handler_count,
                processed_at=now,
            )
        )

    def fail(self, error_message, retry_at=None):
        """Mark processing as failed; due again at ``retry_at`` (default: in five minutes)."""
        if self.status == EventStatus.MAX_RETRIES_EXCEEDED.value:
            raise ValidationError({"status": ["Event exceeded its retries and cannot fail again"]})

        now = utc_now()
        self.status = EventStatus.FAILED.value
        self.error_message = error_message
        self.next_retry_at = retry_at or now + timedelta(minutes=PROCESSING_RETRY_DELAY_MINUTES)
        self._release_lease()
        self.updated_at = now

        self.raise_(
            EventProcessingFailed(
                event_id=str(self.id),
                event_type=self.event_type,
                retry_count=self.retry_count,
                error_message=error_message,
                next_retry_at=self.next_retry_at,
            )
        )

    def fail_dispatch(self, error_message):
        """The processor could not be reached; keep the scheduled retry time if one exists."""
        self.fail(error_message, retry_at=self.next_retry_at)

    def time_out(self, now=None):
        now = now or utc_now()
        self.fail("Processing timed out", retry_at=now)

    # -------------------------------------------------------------------
    # Retry
    # -------------------------------------------------------------------
    def schedule_retry(self, worker_id=None, lease_seconds=300, jitter_seconds=0, now=None):
        if self.status != EventStatus.FAILED.value:
            raise ValidationError({"status": [f"Only failed events can be retried, not {self.status}"]})
        if self.is_exhausted:
            raise ValidationError({"retry_count": [f"Retry limit of {self.max_retries} reached"]})

        now = now or utc_now()
        self.retry_count = (self.retry_count or 0) + 1
        self.next_retry_at = now + timedelta(minutes=backoff_minutes(self.retry_count), seconds=jitter_seconds)
        self.status = EventStatus.PENDING.value
        self.lease_owner = worker_id
        self.lease_expires_at = now + timedelta(seconds=lease_seconds)
        self.updated_at = now

    def mark_exhausted(self):
        if self.status != EventStatus.FAILED.value:
            raise ValidationError({"status": [f"Only failed events can be exhausted, not {self.status}"]})

        self.status = EventStatus.MAX_RETRIES_EXCEEDED.value
        self._release_lease()
        self.updated_at = utc_now()

        self.raise_(
            EventRetriesExhausted(
                event_id=str(self.id),
                event_type=self.event_type,
                retry_count=self.retry_count,
                error_message=self.error_message,
            )
        )

    def _release_lease(self):
        self.lease_owner = None
        self.lease_expires_at = None
