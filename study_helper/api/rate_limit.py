"""In-memory sliding-window throttle for login attempts.

One ``LoginRateLimiter`` is built per app (see ``container.py``); nothing is
kept at module level. State is lost on restart.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, Optional

_log = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


class LoginRateLimiter:
    def __init__(
        self,
        *,
        limit: int = 5,
        window_sec: float = 60.0,
        max_buckets: int = 4096,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = max(1, int(limit))
        self.window_sec = float(window_sec)
        self.max_buckets = max(1, int(max_buckets))
        self._clock = clock
        self._buckets: Dict[str, Deque[float]] = {}
        self._bucket_last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _drop_bucket(self, key: str) -> None:
        self._buckets.pop(key, None)
        self._bucket_last_seen.pop(key, None)

    def _sweep_stale_buckets(self, now: float) -> None:
        cutoff = now - self.window_sec
        stale_keys = [key for key, bucket in self._buckets.items() if not bucket or bucket[-1] <= cutoff]
        for key in stale_keys:
            self._drop_bucket(key)

    def _enforce_bucket_cap(self) -> None:
        if len(self._buckets) <= self.max_buckets:
            return
        overflow = len(self._buckets) - self.max_buckets
        oldest = sorted(self._bucket_last_seen.items(), key=lambda item: item[1])[:overflow]
        for key, _seen in oldest:
            self._drop_bucket(key)

    def is_limited(self, address: str) -> bool:
        """Return True when ``address`` already used up its attempts.

        A limited call is not recorded; an allowed call is.
        """
        key = str(address or UNKNOWN_CLIENT)
        with self._lock:
            now = self._clock()
            self._sweep_stale_buckets(now)
            bucket = self._buckets.setdefault(key, deque())
            cutoff = now - self.window_sec
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            self._bucket_last_seen[key] = now

            if len(bucket) >= self.limit:
                _log.warning("login rate limit hit for %s", key)
                return True

            bucket.append(now)
            self._enforce_bucket_cap()
            return False

    def retry_after(self, address: str) -> int:
        key = str(address or UNKNOWN_CLIENT)
        with self._lock:
            bucket = self._buckets.get(key)
            if not bucket or len(bucket) < self.limit:
                return 0
            return int(bucket[0] + self.window_sec - self._clock()) + 1

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._bucket_last_seen.clear()


def client_address(
    request: Any,
    *,
    trust_forwarded_for: bool = False,
    trusted_proxy_ips: Optional[Iterable[str]] = None,
) -> str:
    client = getattr(request, "client", None)
    host = client.host if client else ""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and trust_forwarded_for:
        proxies = set(trusted_proxy_ips or ())
        if not proxies or host in proxies:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    return host or UNKNOWN_CLIENT
