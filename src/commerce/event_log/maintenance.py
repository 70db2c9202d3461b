"""Stale event timeout — rescues entries whose processor died mid-flight.

An entry stuck in ``processing`` after its lease expired (or, without a
lease, after the threshold) is failed and made due immediately. Entries
left ``pending`` past the threshold, whose dispatch never completed, are
treated the same way.
"""

from datetime import timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.event_log.entry import EventLogEntry, EventStatus
from commerce.shared.clock import as_naive_utc, utc_now
from commerce.shared.queries import each_row

logger = structlog.get_logger(__name__)


def _is_stale(entry, now, cutoff):
    if entry.lease_expires_at is not None:
        return as_naive_utc(entry.lease_expires_at) <= as_naive_utc(now)
    return entry.updated_at is not None and as_naive_utc(entry.updated_at) <= cutoff


def time_out_stale_entries(now=None, stale_after_minutes=10):
    """Fail every stale entry inside the current unit of work. Returns the entries."""
    now = now or utc_now()
    cutoff = as_naive_utc(now - timedelta(minutes=stale_after_minutes))

    repo = current_domain.repository_for(EventLogEntry)
    in_flight = repo._dao.query.filter(status__in=[EventStatus.PROCESSING.value, EventStatus.PENDING.value]).order_by(
        "created_at"
    )
    stale = [entry for entry in each_row(in_flight) if _is_stale(entry, now, cutoff)]
    for entry in stale:
        previous_status, lease_owner = entry.status, entry.lease_owner
        entry.time_out(now)
        repo.add(entry)
        logger.warning(
            "Event processing timed out",
            event_id=str(entry.id),
            event_type=entry.event_type,
            previous_status=previous_status,
            lease_owner=lease_owner,
        )

    if stale:
        logger.info("Stale events timed out", count=len(stale))
    return stale


@commerce.command(part_of="EventLogEntry")
class TimeoutStaleEvents:
    stale_after_minutes = Integer(default=10, min_value=1)
    as_of = DateTime()  # Optional: defaults to now


@commerce.command_handler(part_of=EventLogEntry)
class TimeoutStaleEventsHandler:
    @handle(TimeoutStaleEvents)
    def timeout_stale_events(self, command):
        return len(time_out_stale_entries(command.as_of, command.stale_after_minutes or 10))
