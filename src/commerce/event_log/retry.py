"""Retry sweep — re-dispatches failed events with exponential backoff.

Designed to be triggered periodically by the worker or the maintenance API
endpoint. The RetryFailedEvents command does the bookkeeping in one unit
of work: stale processing is timed out, due failed rows are leased and
rescheduled (or exhausted when out of retries). ``run_retry_sweep`` then
dispatches the leased rows outside that unit of work, so the processor
sees committed rows.
"""

import random
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import DateTime, Integer, String
from protean.utils.globals import current_domain

from commerce.config import get_settings
from commerce.domain import commerce
from commerce.event_log.entry import EventLogEntry, EventStatus, backoff_minutes
from commerce.event_log.maintenance import time_out_stale_entries
from commerce.event_log.recording import dispatch_event
from commerce.shared.clock import as_naive_utc, as_utc, utc_now
from commerce.shared.queries import each_row

logger = structlog.get_logger(__name__)

DEFAULT_LEASE_SECONDS = 300
STALE_AFTER_MINUTES = 10


def _jitter_seconds(retry_count):
    """Up to 10% of the backoff delay, spreading retries of events that failed together."""
    return random.uniform(0, backoff_minutes(retry_count) * 60 * 0.1)


@commerce.command(part_of="EventLogEntry")
class RetryFailedEvents:
    batch_size = Integer(default=20, min_value=1)
    lease_seconds = Integer(default=DEFAULT_LEASE_SECONDS, min_value=1)
    worker_id = String(max_length=100)
    as_of = DateTime()  # Optional: defaults to now


@commerce.command_handler(part_of=EventLogEntry)
class RetryFailedEventsHandler:
    @handle(RetryFailedEvents)
    def retry_failed_events(self, command):
        now = command.as_of or utc_now()
        worker_id = command.worker_id or f"sweep-{uuid4().hex[:8]}"
        batch_size = command.batch_size or 20
        jitter = get_settings().event_retry_jitter

        timed_out = time_out_stale_entries(now, STALE_AFTER_MINUTES)

        repo = current_domain.repository_for(EventLogEntry)
        query = repo._dao.query.filter(status=EventStatus.FAILED.value, next_retry_at__lte=as_utc(now)).order_by(
            "next_retry_at"
        )
        due = []
        for entry in each_row(query, page_size=batch_size):
            if not entry.is_leased_by_other(worker_id, now):
                due.append(entry)
            if len(due) >= batch_size:
                break

        # Entries timed out above are uncommitted and invisible to the query
        seen = {str(entry.id) for entry in due}
        due.extend(entry for entry in timed_out if str(entry.id) not in seen)
        due = sorted(due, key=lambda entry: as_naive_utc(entry.next_retry_at))[:batch_size]

        logger.info("Retry sweep started", worker_id=worker_id, total_found=len(due), timed_out=len(timed_out))

        exhausted = 0
        leased = []
        for entry in due:
            if entry.is_exhausted:
                entry.mark_exhausted()
                exhausted += 1
                logger.error(
                    "Event exceeded max retries",
                    event_id=str(entry.id),
                    event_type=entry.event_type,
                    retry_count=entry.retry_count,
                    last_error=entry.error_message,
                )
            else:
                entry.schedule_retry(
                    worker_id=worker_id,
                    lease_seconds=command.lease_seconds or DEFAULT_LEASE_SECONDS,
                    jitter_seconds=_jitter_seconds(entry.retry_count + 1) if jitter else 0,
                    now=now,
                )
                leased.append(str(entry.id))
            repo.add(entry)

        return {
            "worker_id": worker_id,
            "total_found": len(due),
            "exhausted": exhausted,
            "timed_out": len(timed_out),
            "leased": leased,
        }


def run_retry_sweep(batch_size=None, lease_seconds=DEFAULT_LEASE_SECONDS, worker_id=None, as_of=None):
    """Run one sweep: bookkeeping, then re-dispatch of every leased event."""
    batch_size = batch_size or get_settings().event_retry_batch_size
    outcome = current_domain.process(
        RetryFailedEvents(batch_size=batch_size, lease_seconds=lease_seconds, worker_id=worker_id, as_of=as_of),
        asynchronous=False,
    )

    retried = 0
    for event_id in outcome["leased"]:
        if dispatch_event(event_id, error_prefix="Retry call failed"):
            retried += 1

    summary = {
        "retried": retried,
        "dispatch_failed": len(outcome["leased"]) - retried,
        "exhausted": outcome["exhausted"],
        "timed_out": outcome["timed_out"],
        "total_found": outcome["total_found"],
    }
    logger.info("Retry sweep complete", worker_id=outcome["worker_id"], **summary)
    return summary
