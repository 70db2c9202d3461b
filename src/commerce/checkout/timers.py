"""Timer factories used by the checkout session for its debounced work.

``ThreadingTimerFactory`` runs callbacks on daemon threads. Tests hand the
session a factory whose clock only moves when told to.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable


class TimerHandle(ABC):
    """A scheduled callback that can still be called off."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the callback from running. No effect once it has fired."""
        ...


class TimerFactory(ABC):
    """Abstract interface for scheduling delayed callbacks."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once, ``delay`` seconds from now."""
        ...


class _ThreadingHandle(TimerHandle):
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingTimerFactory(TimerFactory):
    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return _ThreadingHandle(timer)
