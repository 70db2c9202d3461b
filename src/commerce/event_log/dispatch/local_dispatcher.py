"""In-process dispatcher — runs the event processor inside the current domain."""

from protean.utils.globals import current_domain

from commerce.event_log.dispatch.port import EventDispatcher


class LocalEventDispatcher(EventDispatcher):
    def dispatch(self, envelope: dict) -> dict:
        from commerce.event_log.processing import ProcessEvent

        return current_domain.process(ProcessEvent.from_envelope(envelope), asynchronous=False)
