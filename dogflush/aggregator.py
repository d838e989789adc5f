# dogflush/aggregator.py
from __future__ import annotations

import datetime
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence, Union

from dogflush.api import DatadogAPI
from dogflush.config import Settings, settings
from dogflush.histogram import ExactHistogram
from dogflush.periodic import ErrorSink, Ticker
from dogflush.series import MetricKind, MetricSeries, Series
from dogflush.snapshot import Snapshot
from dogflush.tags import unique_tags

log = logging.getLogger(__name__)

Duration = Union[datetime.timedelta, float, int]


class Uploader(Protocol):
    def send(self, series: Sequence[MetricSeries]) -> None: ...


def to_ms(duration: Duration) -> float:
    """timedelta or seconds -> milliseconds"""
    if isinstance(duration, datetime.timedelta):
        return duration.total_seconds() * 1000.0
    return float(duration) * 1000.0


class Aggregator:
    """
    Accumulates gauges, rates and histograms in memory and ships them on flush().

    All recording calls are thread safe and only touch memory. The lock guards the
    two tables and is never held across finalize or the upload: snapshot() swaps
    in fresh tables and everything after that works on the detached copy.

    A name is either a scalar series or a histogram within an epoch; whichever
    kind records it first wins until the next snapshot, and clashing calls are
    dropped.

    Pass `flush_interval` (seconds) to have the aggregator flush itself on a
    background ticker; failures there go to `on_error` (default: discarded).
    """

    def __init__(
        self,
        uploader: Uploader,
        host: str = "",
        clock: Callable[[], float] = time.time,
        flush_interval: Optional[float] = None,
        on_error: Optional[ErrorSink] = None,
        histogram_capacity: int = 64,
    ):
        self.uploader = uploader
        self.host = host
        self.clock = clock
        self.histogram_capacity = histogram_capacity
        self.lock = threading.Lock()
        self._series: Dict[str, Series] = {}
        self._histograms: Dict[str, ExactHistogram] = {}
        self._last_flush = clock()
        self._closed = False
        self._ticker: Optional[Ticker] = None
        if flush_interval:
            self._ticker = Ticker(self.flush, flush_interval, on_error=on_error, name="dogflush-aggregator")

    # ----------------------------- recording -----------------------------

    def record(self, kind: Union[MetricKind, str], name: str, value: float, tags: Optional[List[str]] = None):
        """
        Record a scalar observation by kind ("gauge" or "rate").
        Unknown kinds are ignored.
        """
        try:
            kind = MetricKind(kind)
        except ValueError:
            log.debug("ignoring %s: unsupported metric kind %r", name, kind)
            return
        self._observe(kind, name, float(value), tags)

    def _observe(self, kind: MetricKind, name: str, value: float, tags: Optional[List[str]]):
        with self.lock:
            if name in self._histograms:
                log.debug("ignoring %s %s: name is a histogram this epoch", kind.value, name)
                return
            s = self._series.get(name)
            if s is None:
                s = Series(kind, unique_tags(tags))
                self._series[name] = s
            elif s.kind is not kind:
                log.debug("ignoring %s %s: name is a %s this epoch", kind.value, name, s.kind.value)
                return
            s.observe(value)

    def gauge(self, name: str, value: float, tags: Optional[List[str]] = None):
        self._observe(MetricKind.GAUGE, name, float(value), tags)

    def count(self, name: str, delta: float, tags: Optional[List[str]] = None):
        self._observe(MetricKind.RATE, name, float(delta), tags)

    def incr(self, name: str, tags: Optional[List[str]] = None):
        self.count(name, 1.0, tags)

    def decr(self, name: str, tags: Optional[List[str]] = None):
        self.count(name, -1.0, tags)

    def histogram(self, name: str, value: float, tags: Optional[List[str]] = None):
        with self.lock:
            if name in self._series:
                log.debug("ignoring histogram %s: name is a %s this epoch", name, self._series[name].kind.value)
                return
            h = self._histograms.get(name)
            if h is None:
                h = ExactHistogram(self.histogram_capacity, unique_tags(tags))
                self._histograms[name] = h
            h.add(float(value))

    def timing(self, name: str, duration: Duration, tags: Optional[List[str]] = None):
        """Record a duration (timedelta, or seconds) as a histogram sample in ms."""
        self.histogram(name, to_ms(duration), tags)

    @contextmanager
    def timer(self, name: str, tags: Optional[List[str]] = None) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.timing(name, time.perf_counter() - t0, tags)

    # ----------------------------- flushing -----------------------------

    def snapshot(self) -> Optional[Snapshot]:
        """
        Detach everything recorded so far and start a new epoch.
        Returns None when nothing was recorded since the last snapshot.
        """
        with self.lock:
            if not self._series and not self._histograms:
                return None
            now = self.clock()
            snap = Snapshot(self._series, self._histograms, self.host, self._last_flush, now)
            self._series = {}
            self._histograms = {}
            self._last_flush = now
        return snap

    def flush(self):
        """
        Snapshot, finalize and upload. No-op when there is nothing to send.
        Upload errors propagate; that epoch's data is dropped either way.
        """
        snap = self.snapshot()
        if snap is None:
            return
        series = snap.finalize()
        if not series:
            return
        log.debug("uploading %d series (%d names)", len(series), len(snap))
        self.uploader.send(series)

    def close(self):
        """
        Stop the background ticker, if any, and make a last flush.
        The first call also closes the uploader when it has a close(). Safe to repeat.
        """
        if self._ticker is not None:
            self._ticker.stop()
        first = not self._closed
        self._closed = True
        try:
            self.flush()
        finally:
            closer = getattr(self.uploader, "close", None)
            if first and callable(closer):
                closer()

    @property
    def closed(self) -> bool:
        return self._closed


class NullAggregator:
    """Does nothing successfully. from_settings() hands this out when no API key is set."""

    host = ""

    def record(self, *args, **kwargs):
        pass

    def gauge(self, *args, **kwargs):
        pass

    def count(self, *args, **kwargs):
        pass

    def incr(self, *args, **kwargs):
        pass

    def decr(self, *args, **kwargs):
        pass

    def histogram(self, *args, **kwargs):
        pass

    def timing(self, *args, **kwargs):
        pass

    @contextmanager
    def timer(self, *args, **kwargs) -> Iterator[None]:
        yield

    def snapshot(self):
        return None

    def flush(self):
        pass

    def close(self):
        pass


def from_settings(cfg: Optional[Settings] = None, flush_interval: Optional[float] = None, on_error: Optional[ErrorSink] = None):
    """
    Aggregator wired to the Datadog API from config, flushing itself every
    `flush_interval` seconds (default: cfg.flush_interval_s; 0 disables it).
    Without an API key there is nowhere to send to, so a NullAggregator comes back.
    """
    cfg = settings if cfg is None else cfg
    if not cfg.api_key:
        log.warning("DD_API_KEY is not set, metrics will be dropped")
        return NullAggregator()

    api = DatadogAPI(
        cfg.api_key,
        cfg.app_key,
        timeout=cfg.upload_timeout_s,
        endpoint=cfg.endpoint,
        attempts=cfg.upload_attempts,
    )
    return Aggregator(
        api,
        host=cfg.resolved_hostname(),
        flush_interval=cfg.flush_interval_s if flush_interval is None else flush_interval,
        on_error=on_error,
    )
