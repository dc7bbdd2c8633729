"""
Connectivity gate.

Without a check URL the bridge assumes it is always online. With one, a HEAD
request is made every `interval` seconds and transitions are reported to the
caller. Any HTTP answer counts as online; only transport errors mean offline.
"""

from __future__ import annotations
import logging
import time
from typing import Callable

import requests

log = logging.getLogger("connectivity")


class ConnectivityGate:
    def __init__(self, check_url: str | None = None, interval: float = 30, timeout: float = 5,
                 clock: Callable[[], float] = time.monotonic):
        self.check_url = check_url.strip() if check_url else None
        self.interval = max(1.0, float(interval))
        self.timeout = timeout
        self.clock = clock
        self._online: bool | None = None
        self._next_check = 0.0

    def _probe(self) -> bool:
        if not self.check_url:
            return True
        try:
            requests.head(self.check_url, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as e:
            log.debug("Connectivity probe failed: %s", e)
            return False
        return True

    def online(self) -> bool:
        """Initial state query; also primes the poll schedule."""
        if self._online is None:
            self._online = self._probe()
            self._next_check = self.clock() + self.interval
            log.info("Initial connectivity: %s", "online" if self._online else "offline")
        return self._online

    def timeout_until_check(self, now: float | None = None) -> float | None:
        if not self.check_url:
            return None
        now = self.clock() if now is None else now
        return max(0.0, self._next_check - now)

    def poll(self, now: float | None = None) -> bool | None:
        """New state on a transition, None when nothing changed or not yet due."""
        if not self.check_url:
            return None
        now = self.clock() if now is None else now
        if self._online is None:
            self.online()
            return None
        if now < self._next_check:
            return None
        self._next_check = now + self.interval

        state = self._probe()
        if state == self._online:
            return None
        self._online = state
        log.info("Connectivity changed: %s", "online" if state else "offline")
        return state
