"""Token-bucket rate limiting for AI provider calls.

Each call class (generation, embedding) gets its own bucket sized to the
provider's requests-per-minute quota. Buckets refill continuously and also
keep a ledger of recent grants, so no rolling window ever sees more than
``capacity`` tokens handed out, even right after an idle period leaves the
bucket full.
"""
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Deque, Dict, Optional, Tuple
from repolens.config import RateLimitConfig
import asyncio
import logging
import math
import time

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

# lower bound on a single wait, so float rounding can't spin the loop
_MIN_SLEEP = 0.001


class CallClass(str, Enum):
    GENERATION = "generation"
    EMBEDDING = "embedding"


class TokenBucket:

    def __init__(self, capacity: int, window_seconds: float = 60.0, clock: Clock = time.monotonic):
        if capacity < 1:
            raise ValueError("Bucket capacity must be at least 1")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.refill_rate = capacity / window_seconds  # tokens per second
        self.clock = clock
        self.tokens = float(capacity)
        self.last_refill = clock()
        self._grants: Deque[Tuple[float, int]] = deque()
        self._granted_in_window = 0

    def refill(self) -> None:
        now = self.clock()
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now
        self._prune(now)

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._grants and self._grants[0][0] <= cutoff:
            _, count = self._grants.popleft()
            self._granted_in_window -= count

    def wait_time(self, count: int = 1) -> float:
        """Seconds until ``count`` tokens could be taken; 0 if available now."""
        self.refill()
        bucket_wait = 0.0
        if self.tokens < count:
            bucket_wait = (count - self.tokens) / self.refill_rate

        window_wait = 0.0
        if self._granted_in_window + count > self.capacity:
            # wait until enough of the oldest grants leave the window
            excess = self._granted_in_window + count - self.capacity
            now = self.clock()
            for granted_at, granted in self._grants:
                excess -= granted
                if excess <= 0:
                    window_wait = granted_at + self.window_seconds - now
                    break

        return max(bucket_wait, window_wait)

    def take(self, count: int = 1) -> bool:
        if self.wait_time(count) > 0:
            return False
        self.tokens -= count
        self._grants.append((self.clock(), count))
        self._granted_in_window += count
        return True

    @property
    def available(self) -> int:
        self.refill()
        return max(0, min(math.floor(self.tokens), self.capacity - self._granted_in_window))


class RateLimiter:
    """Per-call-class rate limiter shared by the ingestion stages.

    Construct one per process (or per test) and hand it to every stage that
    calls the AI provider. ``clock`` and ``sleep`` are injectable so tests can
    run against simulated time.
    """

    EMBEDDING_BATCH_CEILING = 25

    def __init__(
        self,
        limits: Dict[CallClass, int],
        window_seconds: float = 60.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep
    ):
        self.window_seconds = window_seconds
        self.limits = {CallClass(k): v for k, v in limits.items()}
        self.sleep = sleep
        self._buckets = {
            call_class: TokenBucket(rpm, window_seconds, clock)
            for call_class, rpm in self.limits.items()
        }
        self._locks: Dict[CallClass, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep
    ) -> "RateLimiter":
        return cls(
            limits={
                CallClass.GENERATION: config.generation_rpm,
                CallClass.EMBEDDING: config.embedding_rpm,
            },
            window_seconds=config.window_seconds,
            clock=clock,
            sleep=sleep
        )

    def _bucket(self, call_class: CallClass) -> TokenBucket:
        try:
            return self._buckets[CallClass(call_class)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown call class: {call_class}")

    def _lock(self, call_class: CallClass) -> asyncio.Lock:
        # created lazily so the lock binds to the running loop
        lock = self._locks.get(call_class)
        if lock is None:
            lock = self._locks[call_class] = asyncio.Lock()
        return lock

    async def acquire(self, call_class: CallClass, count: int = 1) -> None:
        """Wait until ``count`` tokens of ``call_class`` are free, then take them."""
        call_class = CallClass(call_class)
        bucket = self._bucket(call_class)
        if count > bucket.capacity:
            logger.warning(
                f"Requested {count} {call_class.value} tokens but capacity is "
                f"{bucket.capacity}; clamping")
            count = bucket.capacity

        # held across the sleep: acquirers of one class are served in order
        async with self._lock(call_class):
            logged = False
            while True:
                wait = bucket.wait_time(count)
                if wait <= 0 and bucket.take(count):
                    return
                if not logged:
                    logger.info(
                        f"Rate limit: waiting {math.ceil(wait)}s for "
                        f"{call_class.value} capacity")
                    logged = True
                await self.sleep(max(wait, _MIN_SLEEP))

    def get_optimal_batch_size(self, call_class: CallClass) -> int:
        call_class = CallClass(call_class)
        if call_class == CallClass.EMBEDDING:
            available = self._bucket(call_class).available
            return max(1, min(self.EMBEDDING_BATCH_CEILING, available))
        # generation is batched at the content level, one call at a time
        return 1

    def get_min_delay(self, call_class: CallClass) -> float:
        """Minimum spacing between calls of ``call_class``, with a 10% buffer."""
        rpm = self._bucket(call_class).capacity
        return (self.window_seconds / rpm) * 1.1

    def get_available_capacity(self, call_class: CallClass) -> int:
        return self._bucket(call_class).available

    async def wait_between_batches(self, call_class: CallClass, delay: Optional[float] = None) -> None:
        await self.sleep(self.get_min_delay(call_class) if delay is None else delay)
