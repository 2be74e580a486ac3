"""Token-bucket throttle for catalog requests.

The iTunes Search API allows roughly 20 calls per minute per client; catalog
lookups for several artists at startup must stay below that.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class TokenBucket:
    """Token bucket rate limiter.

    - Tokens are added at ``refill_rate`` per second up to ``capacity``
    - Each request consumes one token
    - ``acquire`` sleeps until a token is available
    """

    capacity: float
    refill_rate: float  # tokens per second
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    _tokens: float = field(init=False)
    _last_refill: float = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity <= 0 or self.refill_rate <= 0:
            raise ValueError("capacity and refill_rate must be positive")
        self._tokens = self.capacity
        self._last_refill = self.clock()

    @classmethod
    def per_minute(cls, requests: float, **kwargs) -> TokenBucket:
        """Bucket allowing ``requests`` calls per minute, with a burst of the same size."""
        return cls(capacity=requests, refill_rate=requests / 60.0, **kwargs)

    def _refill(self) -> None:
        now = self.clock()
        elapsed = now - self._last_refill
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    def wait_time(self, tokens: float = 1.0) -> float:
        """Seconds until ``tokens`` are available (0 if they are now)."""
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                return 0.0
            return (tokens - self._tokens) / self.refill_rate

    def try_acquire(self, tokens: float = 1.0) -> bool:
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False

    def acquire(self, tokens: float = 1.0) -> None:
        """Block until ``tokens`` could be taken from the bucket."""
        while not self.try_acquire(tokens):
            # Sleep outside the lock so other callers can check in meanwhile
            self.sleep(self.wait_time(tokens))


## Tests


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def test_token_bucket_burst_then_empty():
    clock = _FakeClock()
    bucket = TokenBucket(capacity=2.0, refill_rate=1.0, clock=clock, sleep=clock.sleep)

    assert bucket.try_acquire() is True
    assert bucket.try_acquire() is True
    assert bucket.try_acquire() is False
    assert bucket.wait_time() == 1.0


def test_token_bucket_refills_over_time():
    clock = _FakeClock()
    bucket = TokenBucket(capacity=1.0, refill_rate=0.5, clock=clock, sleep=clock.sleep)

    bucket.acquire()
    clock.now += 1.0
    assert bucket.try_acquire() is False
    clock.now += 1.0
    assert bucket.try_acquire() is True


def test_token_bucket_acquire_sleeps():
    clock = _FakeClock()
    bucket = TokenBucket.per_minute(20, clock=clock, sleep=clock.sleep)

    for _ in range(20):
        bucket.acquire()
    assert clock.now == 0.0

    bucket.acquire()
    assert 2.9 <= clock.now <= 3.1  # one token every 3 seconds


def test_token_bucket_rejects_non_positive():
    try:
        TokenBucket(capacity=0, refill_rate=1.0)
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")
