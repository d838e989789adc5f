# dogflush/hosttags.py
from __future__ import annotations

import logging
from typing import List, Optional

from dogflush.api import DatadogAPI, UploadError

log = logging.getLogger(__name__)


class HostTagger:
    """
    Registers host tags once. Meant to run under a Periodic: until the first
    call succeeds every tick retries, after that flush() is a no-op.
    """

    def __init__(self, api: DatadogAPI, hostname: str, tags: Optional[List[str]] = None, source: str = ""):
        self.api = api
        self.hostname = hostname
        self.tags = list(tags or [])
        self.source = source
        self.tagged = False

    def flush(self):
        if self.tagged:
            return
        if not self.tags:
            self.tagged = True
            return
        try:
            self.api.add_host_tags(self.hostname, self.source, self.tags)
        except UploadError as e:
            raise UploadError(f"unable to set hosttags for {self.hostname!r}: {e}") from e
        log.info("host tags set for %s: %s", self.hostname, ", ".join(self.tags))
        self.tagged = True

    def close(self):
        pass
