"""Runtime settings read from the environment.

Protean's own configuration (databases, brokers, processing mode) lives in
``domain.toml``. These settings cover the integrations around the domain:
the functions gateway used for event dispatch, payment sessions and email,
the stock database, and the tunables of the retry and escrow sweeps.
"""

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value in (None, ""):
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    functions_url: str | None
    storefront_url: str
    service_key: str | None
    database_url: str | None
    stock_guard: str
    escrow_hold_days: int
    escrow_commission_rate: float
    event_retry_batch_size: int
    event_max_retries: int
    event_retry_jitter: bool
    http_timeout_seconds: float

    @property
    def functions_configured(self) -> bool:
        return bool(self.functions_url and self.service_key)


def get_settings() -> Settings:
    """Build settings from the current environment (read on every call)."""
    functions_url = os.environ.get("FEYXA_FUNCTIONS_URL") or None
    return Settings(
        functions_url=functions_url.rstrip("/") if functions_url else None,
        storefront_url=os.environ.get("FEYXA_STOREFRONT_URL", "http://localhost:3000").rstrip("/"),
        service_key=os.environ.get("FEYXA_SERVICE_KEY") or None,
        database_url=os.environ.get("DATABASE_URL") or None,
        stock_guard=os.environ.get("STOCK_GUARD", "memory").lower(),
        escrow_hold_days=_env_int("ESCROW_HOLD_DAYS", 7),
        escrow_commission_rate=_env_float("ESCROW_COMMISSION_RATE", 0.05),
        event_retry_batch_size=_env_int("EVENT_RETRY_BATCH_SIZE", 20),
        event_max_retries=_env_int("EVENT_MAX_RETRIES", 3),
        event_retry_jitter=_env_bool("EVENT_RETRY_JITTER"),
        http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
    )
