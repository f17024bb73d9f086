import dataclasses
import time
import typing


class RateLimiter:
    # Interface

    def when(self, item) -> float:
        """Return how long to wait before the item may be retried."""
        raise NotImplementedError()

    def forget(self, item):
        """Stop tracking the item, it was processed successfully."""
        raise NotImplementedError()

    def retries(self, item) -> int:
        """Return how many times the item failed in a row."""
        raise NotImplementedError()


class MaxOfRateLimiter(RateLimiter):
    """Combines rate limiters by always taking the longest delay."""

    def __init__(self, *limiters: RateLimiter):
        self.limiters = limiters

    def __repr__(self):
        return f'<MaxOfRateLimiter {self.limiters!r}>'

    def when(self, item):
        return max(limiter.when(item) for limiter in self.limiters)

    def forget(self, item):
        for limiter in self.limiters:
            limiter.forget(item)

    def retries(self, item):
        return max(limiter.retries(item) for limiter in self.limiters)


@dataclasses.dataclass
class BucketRateLimiter(RateLimiter):
    """Token bucket shared by all items, limits the overall retry rate."""

    # Maximum number of tokens in the bucket.
    capacity: int = 100
    # Tokens added per second.
    rate: float = 10
    clock: typing.Callable[[], float] = time.monotonic

    def __post_init__(self):
        self._tokens = float(self.capacity)
        self._last_refill = self.clock()
        # Point in time at which the next borrowed token becomes available.
        self._next_free = self._last_refill

    def _refill(self):
        now = self.clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
            self._last_refill = now
        return now

    def when(self, item):
        now = self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return 0
        # Reserve the next token that is not yet reserved by another item.
        # See https://danielmangum.com/posts/controller-runtime-client-go-rate-limiting/
        self._next_free = max(self._next_free, now) + 1 / self.rate
        return self._next_free - now

    def forget(self, item):
        pass

    def retries(self, item):
        return 0


@dataclasses.dataclass
class ItemExponentialFailureRateLimiter(RateLimiter):
    """Doubles the delay of an item on each failure, up to max_delay."""

    base_delay: float = 0.005  # 5 Milliseconds
    max_delay: float = 1000  # 1000 Seconds
    failures: typing.Dict[object, int] = dataclasses.field(default_factory=dict, init=False)

    def when(self, item):
        exponent = self.failures.get(item, 0)
        self.failures[item] = exponent + 1
        # Avoid float overflow for items failing for a very long time.
        if exponent > 64:
            return self.max_delay
        return min(self.base_delay * 2 ** exponent, self.max_delay)

    def forget(self, item):
        self.failures.pop(item, None)

    def retries(self, item):
        return self.failures.get(item, 0)


def default_rate_limiter(backoff=None, bucket=None):
    """Rate limiter used by controllers: per item backoff and an overall bucket."""
    backoff_kwargs = dataclasses.asdict(backoff) if backoff is not None else {}
    bucket_kwargs = dataclasses.asdict(bucket) if bucket is not None else {}
    return MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(**backoff_kwargs),
        BucketRateLimiter(**bucket_kwargs),
    )
