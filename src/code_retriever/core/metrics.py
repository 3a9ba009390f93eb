"""
In-memory counters for the /metrics endpoint (rough p50/p95, cache hit rate).
Why: enough visibility to see how much upstream traffic the cache absorbs.
"""

import threading
from collections import deque
from typing import Deque, Dict, List

_MAX_LATENCY_SAMPLES = 10_000


def _percentile(values: List[int], p: float) -> int:
    if not values:
        return 0
    idx = max(0, min(len(values) - 1, int(len(values) * p)))
    return sorted(values)[idx]


class _Metrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_requests = 0
        self.total_errors = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.repository_hits = 0
        self.upstream_fetches = 0
        self._latencies: Deque[int] = deque(maxlen=_MAX_LATENCY_SAMPLES)

    def _incr(self, name: str) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)

    def increment_requests(self) -> None:
        self._incr("total_requests")

    def increment_errors(self) -> None:
        self._incr("total_errors")

    def record_cache_hit(self) -> None:
        self._incr("cache_hits")

    def record_cache_miss(self) -> None:
        self._incr("cache_misses")

    def record_repository_hit(self) -> None:
        self._incr("repository_hits")

    def record_upstream_fetch(self) -> None:
        self._incr("upstream_fetches")

    def record_latency(self, ms: int) -> None:
        with self._lock:
            self._latencies.append(ms)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            lat = list(self._latencies)
            return {
                "total_requests": self.total_requests,
                "total_errors": self.total_errors,
                "cache_hits": self.cache_hits,
                "cache_misses": self.cache_misses,
                "repository_hits": self.repository_hits,
                "upstream_fetches": self.upstream_fetches,
                "p50_ms": _percentile(lat, 0.50),
                "p95_ms": _percentile(lat, 0.95),
            }


metrics = _Metrics()
