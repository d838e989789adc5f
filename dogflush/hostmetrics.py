# dogflush/hostmetrics.py
from __future__ import annotations

from typing import Any, List, NamedTuple, Optional

import psutil

MB = 1024.0 * 1024.0

# fields that add up to wall time; guest is already counted in user
_TOTAL_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")


class HostMetrics(NamedTuple):
    cpu_user: float
    cpu_system: float
    cpu_iowait: float
    cpu_idle: float
    cpu_stolen: float
    cpu_guest: float
    mem_total: float
    mem_free: float
    mem_used: float
    mem_usable: float
    mem_pct_usable: float


def _f(times: Any, field: str) -> float:
    # most of these only exist on Linux
    return float(getattr(times, field, 0.0))


def _total(times: Any) -> float:
    return sum(_f(times, k) for k in _TOTAL_FIELDS)


class HostMetricCollector:
    """CPU usage since the previous run (percent) plus a memory reading (MiB)."""

    def __init__(self):
        self.last_times = psutil.cpu_times()
        self.last_total = _total(self.last_times)

    def run(self) -> HostMetrics:
        t = psutil.cpu_times()
        total = _total(t)
        span = total - self.last_total
        to_pct = 100.0 / span if span > 0 else 0.0

        last = self.last_times
        self.last_times = t
        self.last_total = total

        def delta(*fields: str) -> float:
            return (sum(_f(t, k) for k in fields) - sum(_f(last, k) for k in fields)) * to_pct

        vm = psutil.virtual_memory()
        return HostMetrics(
            cpu_user=delta("user", "nice"),
            cpu_system=delta("system", "irq", "softirq"),
            cpu_iowait=delta("iowait"),
            cpu_idle=delta("idle"),
            cpu_stolen=delta("steal"),
            cpu_guest=delta("guest"),
            mem_total=vm.total / MB,
            mem_free=vm.free / MB,
            mem_used=(vm.total - vm.free) / MB,
            mem_usable=vm.available / MB,
            mem_pct_usable=(100.0 - vm.percent) / 100.0,
        )


class HostMetricsFlusher:
    """
    Records host gauges into an aggregator, then flushes it.
    Run it under a Periodic in place of the aggregator's own schedule.
    """

    def __init__(self, aggregator, tags: Optional[List[str]] = None, collector: Optional[HostMetricCollector] = None):
        self.aggregator = aggregator
        self.tags = list(tags or [])
        self.collector = collector or HostMetricCollector()

    def record(self):
        hm = self.collector.run()
        for field, value in hm._asdict().items():
            group, _, name = field.partition("_")
            self.aggregator.gauge(f"xsystem.{group}.{name}", value, self.tags)

    def flush(self):
        self.record()
        self.aggregator.flush()

    def close(self):
        self.aggregator.close()
