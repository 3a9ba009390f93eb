"""
In-memory TTL cache with a cached logical clock and background expiry.
Why: keep repeated lookups off an upstream API capped at 5 req/s.

Lookups compare against ``clock_now``, a snapshot of wall-clock time that a
background job refreshes every ``clock_interval`` seconds, so expiry checks
may be up to one tick stale. A second job sweeps expired entries every
``sweep_interval`` seconds; lookups never delete.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from apscheduler.schedulers.background import BackgroundScheduler

from .logging import get_logger
from .rwlock import ReadWriteLock

_LOG = get_logger(__name__)

V = TypeVar("V")

_NS_PER_SECOND = 1_000_000_000


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: int  # ns, same timebase as clock_now


class TTLCache(Generic[V]):
    def __init__(
        self,
        sweep_interval: float,
        clock_interval: float = 1.0,
        clock: Callable[[], int] = time.time_ns,
        start: bool = True,
    ) -> None:
        if sweep_interval <= 0 or clock_interval <= 0:
            raise ValueError("sweep_interval and clock_interval must be positive")
        self.sweep_interval = sweep_interval
        self.clock_interval = clock_interval
        self._clock = clock
        self._entries: Dict[str, _Entry[V]] = {}
        self._lock = ReadWriteLock()
        self._now = clock()
        self._scheduler: Optional[BackgroundScheduler] = None
        if start:
            self.start()

    def lookup(self, key: str) -> Tuple[Optional[V], bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock.read():
            entry = self._entries.get(key)
            if entry is None or self._now > entry.expires_at:
                return None, False
            return entry.value, True

    def lookup_with_ttl(self, key: str) -> Tuple[Optional[V], Optional[float]]:
        """Like ``lookup`` but report the seconds left instead of a flag.

        A miss returns ``(None, None)``; an entry at its exact expiry returns 0.0.
        """
        with self._lock.read():
            entry = self._entries.get(key)
            if entry is None or self._now > entry.expires_at:
                return None, None
            return entry.value, (entry.expires_at - self._now) / _NS_PER_SECOND

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        value, found = self.lookup(key)
        return value if found else default

    def set(self, key: str, value: V, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        ttl_ns = int(ttl_seconds * _NS_PER_SECOND)
        with self._lock.write():
            self._entries[key] = _Entry(value=value, expires_at=self._now + ttl_ns)

    def refresh_clock(self) -> None:
        now = self._clock()
        with self._lock.write():
            self._now = now

    def sweep(self) -> int:
        """Delete every entry whose expiry has passed; return how many went."""
        with self._lock.write():
            expired = [k for k, e in self._entries.items() if self._now >= e.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            _LOG.debug(f"ttl cache sweep removed={len(expired)}")
        return len(expired)

    @property
    def clock_now(self) -> int:
        with self._lock.read():
            return self._now

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    # lifecycle

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        if self._scheduler is not None:
            return
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            self.refresh_clock,
            "interval",
            seconds=self.clock_interval,
            id="ttl-cache-clock",
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.sweep,
            "interval",
            seconds=self.sweep_interval,
            id="ttl-cache-sweep",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        _LOG.info(
            f"ttl cache started clock_interval={self.clock_interval}s "
            f"sweep_interval={self.sweep_interval}s"
        )

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=True)
        self._scheduler = None
        _LOG.info("ttl cache stopped")

    def __enter__(self) -> "TTLCache[V]":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
