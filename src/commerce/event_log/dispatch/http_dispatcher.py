"""HTTP dispatcher — posts events to the deployed process-event function."""

import requests
import structlog

from commerce.event_log.dispatch.port import EventDispatcher
from commerce.shared.errors import DispatchError

logger = structlog.get_logger(__name__)


class HttpEventDispatcher(EventDispatcher):
    def __init__(self, base_url: str, service_key: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/process-event"

    def dispatch(self, envelope: dict) -> dict:
        try:
            response = self.session.post(
                self.endpoint,
                json=envelope,
                headers={
                    "Authorization": f"Bearer {self.service_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DispatchError(str(exc)) from exc

        if not response.ok:
            raise DispatchError(f"HTTP {response.status_code}: {response.text[:200]}")

        logger.debug(
            "Event dispatched",
            event_type=envelope.get("event_type"),
            aggregate_id=envelope.get("aggregate_id"),
            status_code=response.status_code,
        )
        try:
            return response.json()
        except ValueError:
            return {}
