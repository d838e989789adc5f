# dogflush/api.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from dogflush.config import DEFAULT_ENDPOINT
from dogflush.series import MetricSeries

log = logging.getLogger(__name__)

OK_STATUS = (200, 201, 202)


class UploadError(Exception):
    """The backend refused a write, or it never got there."""


class DatadogAPI:
    """
    Thin client for the two Datadog v1 endpoints we need.
    - send(): POST /series (the Aggregator's uploader)
    - add_host_tags(): POST /tags/hosts/<host>
    Non-2xx replies raise UploadError with the status and body.
    Connection-level failures are retried up to `attempts` times (1 = no retry).
    Any failed request becomes an UploadError without the URL, which carries the keys.
    """

    def __init__(
        self,
        api_key: Optional[str],
        app_key: Optional[str] = None,
        timeout: float = 5.0,
        endpoint: str = DEFAULT_ENDPOINT,
        attempts: int = 1,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key or ""
        self.app_key = app_key or ""
        self.endpoint = endpoint.rstrip("/")
        self.attempts = max(1, int(attempts))
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)
        self.headers = {"Content-Type": "application/json"}

    # ----------------------------- internals -----------------------------

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential_jitter(initial=0.5, max=8),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )

    def _write(self, url: str, params: Dict[str, str], payload: Dict[str, Any]):
        try:
            for attempt in self._retrying():
                with attempt:
                    r = self.client.post(url, params=params, json=payload, headers=self.headers)
        except httpx.RequestError as e:
            raise UploadError(f"{type(e).__name__}: {e}") from None

        if r.status_code not in OK_STATUS:
            raise UploadError(f"http status {r.status_code}: {r.text}")

    # ----------------------------- endpoints -----------------------------

    def send(self, series: Sequence[MetricSeries]):
        """POST a batch of series. Empty batches are not sent."""
        if not series:
            return
        payload = {"series": [s.wire() for s in series]}
        self._write(f"{self.endpoint}/series", {"api_key": self.api_key}, payload)
        log.debug("sent %d series", len(series))

    def add_host_tags(self, host: str, source: str, tags: List[str]):
        """
        Attach tags to a host. Datadog rejects this for hosts it hasn't
        seen metrics from yet, so callers should expect to retry.
        """
        params = {
            "api_key": self.api_key,
            "application_key": self.app_key,
            "source": source or "user",
        }
        self._write(f"{self.endpoint}/tags/hosts/{quote(host, safe='')}", params, {"tags": list(tags)})

    def close(self):
        if self._owns_client:
            self.client.close()
