# dogflush/snapshot.py
from __future__ import annotations

from typing import Dict, List, Optional

from dogflush.histogram import ExactHistogram
from dogflush.series import MetricKind, MetricSeries, Series

# suffix -> (HistogramResult field, kind); emitted in this order
HISTOGRAM_SERIES = (
    ("count", "count", MetricKind.RATE),
    ("max", "max", MetricKind.GAUGE),
    ("avg", "avg", MetricKind.GAUGE),
    ("median", "median", MetricKind.GAUGE),
    ("95percentile", "p95", MetricKind.GAUGE),
)


class Snapshot:
    """
    One epoch's worth of data, detached from the Aggregator that produced it.
    Nothing else holds a reference to these tables, so finalize() runs lock-free.
    """

    __slots__ = ("series", "histograms", "host", "started", "taken")

    def __init__(
        self,
        series: Dict[str, Series],
        histograms: Dict[str, ExactHistogram],
        host: str,
        started: float,
        taken: float,
    ):
        self.series = series
        self.histograms = histograms
        self.host = host
        self.started = started
        self.taken = taken

    def __len__(self) -> int:
        return len(self.series) + len(self.histograms)

    def elapsed(self, as_of: Optional[float] = None) -> int:
        """Whole seconds covered by this epoch (truncated, never negative)."""
        as_of = self.taken if as_of is None else as_of
        return max(0, int(as_of - self.started))

    def finalize(self, as_of: Optional[float] = None) -> List[MetricSeries]:
        """
        Turn the epoch into wire series:
          - rates become per-second over the elapsed interval (raw sum if it is 0)
          - gauges keep the last value, interval 0
          - each non-empty histogram expands into count/max/avg/median/95percentile
        Every point is stamped with `as_of` (defaults to the snapshot time).
        """
        as_of = self.taken if as_of is None else as_of
        ts = float(int(as_of))
        elapsed = self.elapsed(as_of)
        out: List[MetricSeries] = []

        for name, s in self.series.items():
            value, interval = s.value, 0
            if s.kind is MetricKind.RATE and elapsed > 0:
                value, interval = s.value / elapsed, elapsed
            out.append(MetricSeries.point(name, s.kind, ts, value, self.host, s.tags, interval))

        for name, h in self.histograms.items():
            res = h.flush()
            if res.count == 0:
                continue
            for suffix, field, kind in HISTOGRAM_SERIES:
                interval = elapsed if kind is MetricKind.RATE else 0
                out.append(
                    MetricSeries.point(
                        f"{name}.{suffix}", kind, ts, getattr(res, field), self.host, h.tags, interval
                    )
                )

        return out
