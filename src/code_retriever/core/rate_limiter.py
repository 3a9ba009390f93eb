"""
Token bucket shared by all Etherscan traffic.
Why: the free API tier allows 5 calls/s per key; exceeding it returns errors.
"""

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    def __init__(
        self,
        rate: float = 5.0,
        burst: int = 5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._updated_at = now

    def _reserve(self) -> float:
        """Take a token if one is free; otherwise return seconds until one is."""
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            return (1.0 - self._tokens) / self.rate

    def try_acquire(self) -> bool:
        return self._reserve() == 0.0

    def acquire(self, timeout: Optional[float] = None) -> bool:
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            wait = self._reserve()
            if wait == 0.0:
                return True
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining < wait:
                    return False
            self._sleep(wait)
