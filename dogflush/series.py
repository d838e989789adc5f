# dogflush/series.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class MetricKind(str, Enum):
    GAUGE = "gauge"
    RATE = "rate"


class MetricSeries(BaseModel):
    """
    One series as the Datadog `series` endpoint wants it:
      {metric, points: [[unix_ts, value]], type, host?, tags?, interval?}
    Optional fields are left as None so `wire()` drops them.
    """
    metric: str
    points: List[List[float]]
    type: MetricKind = MetricKind.GAUGE
    host: Optional[str] = None
    tags: Optional[List[str]] = None
    interval: Optional[int] = None

    @classmethod
    def point(
        cls,
        name: str,
        kind: MetricKind,
        ts: float,
        value: float,
        host: str = "",
        tags: Optional[List[str]] = None,
        interval: int = 0,
    ) -> "MetricSeries":
        return cls(
            metric=name,
            points=[[float(ts), float(value)]],
            type=kind,
            host=host or None,
            tags=list(tags) if tags else None,
            interval=interval if interval > 0 else None,
        )

    @property
    def value(self) -> float:
        return self.points[-1][1]

    def wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Series:
    """Live accumulator for one scalar name during an epoch."""

    __slots__ = ("kind", "value", "tags")

    def __init__(self, kind: MetricKind, tags: List[str]):
        self.kind = kind
        self.value = 0.0
        self.tags = tags

    def observe(self, value: float):
        if self.kind is MetricKind.RATE:
            self.value += value
        else:
            self.value = value
