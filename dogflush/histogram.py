# dogflush/histogram.py
from __future__ import annotations

from typing import List, NamedTuple, Optional

import numpy as np

# upper bound on the initial sample buffer; it still doubles past this as needed
MAX_INITIAL_CAPACITY = 1024


class HistogramResult(NamedTuple):
    """Descriptive statistics of one epoch of samples. count == 0 means "omit"."""
    count: int = 0
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    median: float = 0.0
    p95: float = 0.0


class ExactHistogram:
    """
    Keeps every sample, sorts on flush and reads the stats off by index.

    Quantiles are truncated-index picks over the sorted samples (no interpolation),
    which is what the Datadog agent does locally, so numbers line up with it.
    Sorting 1k samples takes well under a millisecond.

    Not thread safe: the Aggregator only touches a histogram under its own lock
    and never hands one across an epoch boundary.
    """

    __slots__ = ("tags", "_buf", "_n")

    def __init__(self, capacity: int = 64, tags: Optional[List[str]] = None):
        self.tags: List[str] = list(tags or [])
        self._buf = np.empty(max(1, min(int(capacity), MAX_INITIAL_CAPACITY)), dtype=np.float64)
        self._n = 0

    def __len__(self) -> int:
        return self._n

    def add(self, value: float):
        if self._n == len(self._buf):
            grown = np.empty(len(self._buf) * 2, dtype=np.float64)
            grown[: self._n] = self._buf
            self._buf = grown
        self._buf[self._n] = value
        self._n += 1

    def flush(self) -> HistogramResult:
        """
        Compute stats over everything added since the last flush, then reset.
        """
        n = self._n
        if n == 0:
            return HistogramResult()

        s = np.sort(self._buf[:n])
        lo, hi = float(s[0]), float(s[n - 1])
        self._buf = np.empty(len(self._buf), dtype=np.float64)
        self._n = 0

        return HistogramResult(
            count=n,
            min=lo,
            max=hi,
            avg=min(max(float(s.sum() / n), lo), hi),
            median=float(s[n // 2]),
            p95=float(s[(n * 95) // 100]),
        )
