import threading
import time


class TokenBucket:
    def __init__(self, rate_per_sec=1.0, capacity=2.0, clock=time.monotonic):
        self.rate_per_sec = rate_per_sec
        self.capacity = capacity
        self.tokens = capacity
        self.clock = clock
        self.last_check = clock()

    def take(self):
        """Consume one token; return seconds to wait when the bucket is empty."""
        now = self.clock()
        elapsed = now - self.last_check
        self.last_check = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate_per_sec)
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return 0.0
        return max(0.0, (1.0 - self.tokens) / self.rate_per_sec)


class RateLimiter:
    """Per-client token buckets for the API path prefix."""

    def __init__(self, per_minute=300, burst=60, prefix="/api/", max_clients=10_000, clock=time.monotonic):
        self.rate_per_sec = max(float(per_minute), 1.0) / 60.0
        self.burst = max(float(burst), 1.0)
        self.prefix = prefix
        self.max_clients = max_clients
        self.clock = clock
        self._buckets = {}
        self._lock = threading.Lock()

    def applies_to(self, path):
        return path.startswith(self.prefix)

    def check(self, client_key):
        """Return 0.0 when allowed, else the retry-after delay in seconds."""
        with self._lock:
            bucket = self._buckets.get(client_key)
            if bucket is None:
                if len(self._buckets) >= self.max_clients:
                    self._buckets.clear()
                bucket = TokenBucket(self.rate_per_sec, self.burst, clock=self.clock)
                self._buckets[client_key] = bucket
            return bucket.take()
