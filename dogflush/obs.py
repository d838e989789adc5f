# dogflush/obs.py
from __future__ import annotations

import time
from typing import Callable, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class RequestMetrics(BaseHTTPMiddleware):
    """
    Counts and times requests into an Aggregator:
      <prefix>.requests                 rate, every request
      <prefix>.errors                   rate, 5xx or an exception
      <prefix>.latency.<METHOD>.<path>  histogram, ms
    Tags are fixed when a name is first recorded, so per-route detail lives in
    the name. Every series carries only the constructor tags.
    """

    def __init__(self, app: ASGIApp, aggregator, prefix: str = "http", tags: Optional[List[str]] = None):
        super().__init__(app)
        self.aggregator = aggregator
        self.prefix = prefix
        self.tags = list(tags or [])

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        status = 500
        try:
            response: Response = await call_next(request)
            status = response.status_code
            return response
        finally:
            elapsed = time.perf_counter() - start
            self.aggregator.incr(f"{self.prefix}.requests", self.tags)
            if status >= 500:
                self.aggregator.incr(f"{self.prefix}.errors", self.tags)
            # fine for templated paths, noisy for ones with ids in them
            self.aggregator.timing(f"{self.prefix}.latency.{request.method}.{request.url.path}", elapsed, self.tags)
