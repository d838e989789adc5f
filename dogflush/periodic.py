# dogflush/periodic.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional, Protocol

log = logging.getLogger(__name__)

ErrorSink = Callable[[Exception], None]


class Flushable(Protocol):
    def flush(self) -> None: ...

    def close(self) -> None: ...


def discard(err: Exception):
    """Default error sink: periodic flush failures are dropped."""


class Ticker:
    """
    Calls `fn` every `period` seconds on a daemon thread until stopped.

    stop() never blocks. A stop that lands mid-call takes effect before the next
    call, since the loop re-checks the event before every invocation.
    Exceptions from `fn` go to `on_error` and the loop keeps going.
    """

    def __init__(self, fn: Callable[[], None], period: float, on_error: Optional[ErrorSink] = None, name: str = "dogflush-ticker"):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period!r}")
        self.fn = fn
        self.period = float(period)
        self.on_error = on_error or discard
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def _run(self):
        # wait() returns True once stopped, so cancellation always wins over a tick
        while not self._stop.wait(self.period):
            try:
                self.fn()
            except Exception as e:
                log.debug("periodic call failed: %s", e)
                self.on_error(e)

    def stop(self):
        self._stop.set()

    def join(self, timeout: Optional[float] = None):
        self._thread.join(timeout)


class Periodic:
    """Flushes a Flushable at a fixed period; close() stops the ticker, then closes it."""

    def __init__(self, client: Flushable, period: float, on_error: Optional[ErrorSink] = None):
        self.client = client
        self._ticker = Ticker(self.flush, period, on_error=on_error, name=f"dogflush-{type(client).__name__}")

    def flush(self):
        self.client.flush()

    def close(self):
        self._ticker.stop()
        self.client.close()


class MultiTask:
    """
    A group of Flushables under one lifecycle.
    flush()/close() try every member, in order, and re-raise the first failure.
    """

    def __init__(self, tasks: Optional[Iterable[Optional[Flushable]]] = None):
        self.tasks: List[Optional[Flushable]] = list(tasks or [])

    def append(self, task: Optional[Flushable]):
        self.tasks.append(task)

    def __len__(self) -> int:
        return len(self.tasks)

    def _each(self, op: str):
        first: Optional[Exception] = None
        for t in self.tasks:
            if t is None:
                continue
            try:
                getattr(t, op)()
            except Exception as e:
                log.debug("%s failed for %r: %s", op, t, e)
                if first is None:
                    first = e
        if first is not None:
            raise first

    def flush(self):
        self._each("flush")

    def close(self):
        self._each("close")
