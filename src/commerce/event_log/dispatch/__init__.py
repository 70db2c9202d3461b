"""Event dispatcher factory.

Provides get_dispatcher() / set_dispatcher() to swap implementations:
- HttpEventDispatcher when the functions gateway URL and service key are set
- LocalEventDispatcher otherwise (processes events in-process)
- FakeEventDispatcher in tests
"""

from commerce.config import get_settings
from commerce.event_log.dispatch.port import EventDispatcher

_current_dispatcher: EventDispatcher | None = None


def get_dispatcher() -> EventDispatcher:
    """Return the current event dispatcher."""
    global _current_dispatcher
    if _current_dispatcher is None:
        settings = get_settings()
        if settings.functions_configured:
            from commerce.event_log.dispatch.http_dispatcher import HttpEventDispatcher

            _current_dispatcher = HttpEventDispatcher(
                settings.functions_url,
                settings.service_key,
                timeout=settings.http_timeout_seconds,
            )
        else:
            from commerce.event_log.dispatch.local_dispatcher import LocalEventDispatcher

            _current_dispatcher = LocalEventDispatcher()
    return _current_dispatcher


def set_dispatcher(dispatcher: EventDispatcher) -> None:
    """Override the active dispatcher (useful for tests)."""
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_dispatcher() -> None:
    """Reset to the default dispatcher."""
    global _current_dispatcher
    _current_dispatcher = None
