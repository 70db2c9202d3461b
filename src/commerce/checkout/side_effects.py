"""Best-effort side effects of a checkout leg.

Event emission and attribution must never undo or fail an order that is
already committed. Tasks are queued by name and run when the leg drains
the queue; a failing task is logged and counted, never raised.
"""

import queue
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class SideEffectTask:
    name: str
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    context: dict = field(default_factory=dict)


@dataclass
class SideEffectFailure:
    name: str
    error: str
    context: dict


class SideEffectQueue:
    def __init__(self, maxsize: int = 64):
        self._queue: queue.Queue[SideEffectTask] = queue.Queue(maxsize=maxsize)
        self._succeeded: Counter = Counter()
        self._failed: Counter = Counter()
        self.failures: list[SideEffectFailure] = []

    def submit(self, name: str, func: Callable[..., Any], *args, context: dict | None = None, **kwargs) -> None:
        """Queue a task; a full queue is drained first so submission never blocks."""
        task = SideEffectTask(name=name, func=func, args=args, kwargs=kwargs, context=context or {})
        try:
            self._queue.put_nowait(task)
        except queue.Full:
            self.drain()
            self._queue.put_nowait(task)

    def drain(self) -> int:
        """Run every queued task. Returns the number of failures in this drain."""
        failures = 0
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                return failures

            try:
                task.func(*task.args, **task.kwargs)
            except Exception as exc:
                failures += 1
                self._failed[task.name] += 1
                self.failures.append(SideEffectFailure(name=task.name, error=str(exc), context=task.context))
                logger.warning("Side effect failed", task=task.name, error=str(exc), **task.context)
            else:
                self._succeeded[task.name] += 1
            finally:
                self._queue.task_done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def stats(self) -> dict[str, dict[str, int]]:
        names = set(self._succeeded) | set(self._failed)
        return {name: {"succeeded": self._succeeded[name], "failed": self._failed[name]} for name in sorted(names)}
