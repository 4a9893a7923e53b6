"""Operational counters for the SDK and their immutable snapshot."""
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class SDKMetrics:
    """Point-in-time snapshot of SDK usage and performance."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    total_response_time_ms: float = 0.0
    last_call_time: Optional[datetime] = None

    @property
    def average_response_time_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_response_time_ms / self.total_requests

    @property
    def cache_hit_rate(self) -> float:
        """Cache hits as a percentage of cache lookups (0.0 to 100.0)."""
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return self.cache_hits / lookups * 100.0

    @property
    def success_rate(self) -> float:
        """Successful requests as a percentage of all requests (0.0 to 100.0)."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests * 100.0

    def __str__(self) -> str:
        return (
            f"SDKMetrics(total={self.total_requests}, success={self.successful_requests}, "
            f"failed={self.failed_requests}, hits={self.cache_hits}, misses={self.cache_misses}, "
            f"hit_rate={self.cache_hit_rate:.1f}%, avg={self.average_response_time_ms:.2f}ms, "
            f"last_call={self.last_call_time})"
        )


class _AtomicCounter:
    """A number guarded by its own lock."""

    def __init__(self, initial=0):
        self._value = initial
        self._lock = threading.Lock()

    def add(self, amount=1) -> None:
        with self._lock:
            self._value += amount

    @property
    def value(self):
        with self._lock:
            return self._value


class MetricsRecorder:
    """
    Collects SDK counters from any thread.

    Every counter is updated independently; there is no lock spanning
    several counters, so a snapshot may combine values read at slightly
    different instants.
    """

    def __init__(self):
        self._total_requests = _AtomicCounter()
        self._successful = _AtomicCounter()
        self._failed = _AtomicCounter()
        self._cache_hits = _AtomicCounter()
        self._cache_misses = _AtomicCounter()
        self._total_response_time_ms = _AtomicCounter(0.0)
        # Reference assignment is atomic under the GIL
        self._last_call_time: Optional[datetime] = None

    def record_outcome(self, success: bool, elapsed_ms: float) -> None:
        self._total_requests.add()
        self._total_response_time_ms.add(max(elapsed_ms, 0.0))
        self._last_call_time = datetime.now(timezone.utc)
        if success:
            self._successful.add()
        else:
            self._failed.add()

    def record_cache_hit(self) -> None:
        self._cache_hits.add()

    def record_cache_miss(self) -> None:
        self._cache_misses.add()

    def snapshot(self) -> SDKMetrics:
        return SDKMetrics(
            total_requests=self._total_requests.value,
            successful_requests=self._successful.value,
            failed_requests=self._failed.value,
            cache_hits=self._cache_hits.value,
            cache_misses=self._cache_misses.value,
            total_response_time_ms=self._total_response_time_ms.value,
            last_call_time=self._last_call_time,
        )
