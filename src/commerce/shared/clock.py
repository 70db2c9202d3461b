"""Datetime helpers for comparing stored timestamps against "now".

Providers may hand back naive or aware datetimes depending on the backend,
so sweeps compare both sides as naive UTC.
"""

from datetime import UTC, datetime


def utc_now():
    return datetime.now(UTC)


def as_naive_utc(value):
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def is_due(moment, now=None):
    """True when ``moment`` is set and not in the future."""
    if moment is None:
        return False
    return as_naive_utc(moment) <= as_naive_utc(now or utc_now())


def as_utc(value):
    """Aware UTC form of ``value``, the bound used when filtering stored timestamps in a query."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
