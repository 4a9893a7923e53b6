"""Thread-safe LRU cache with lazy TTL expiration for weather records."""
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional


def normalize_city_name(city_name: Optional[str]) -> str:
    """
    Normalize a city name into a cache key.

    Raises:
        ValueError: If the name is missing, not a string or blank
    """
    if city_name is None or not isinstance(city_name, str):
        raise ValueError("City name must not be null or empty")
    normalized = city_name.strip().casefold()
    if not normalized:
        raise ValueError("City name must not be null or empty")
    return normalized


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the monotonic time it was stored."""
    key: str
    value: Any
    inserted_at: float

    def age(self, now: float) -> float:
        return now - self.inserted_at


class WeatherCache:
    """
    Bounded cache keyed by normalized city name.

    Entries are kept in least-recently-used order: both get() and put()
    count as access. When a new key is stored at capacity, the least
    recently used entry is evicted first. Entries older than the TTL are
    dropped when read; there is no background sweep.
    """

    def __init__(self, capacity: int = 10, ttl_seconds: float = 600.0):
        """
        Initialize the cache.

        Args:
            capacity: Maximum number of entries kept
            ttl_seconds: Maximum age of an entry before it is treated as absent
        """
        if capacity <= 0:
            raise ValueError("Max size must be positive")
        if ttl_seconds is None or ttl_seconds <= 0:
            raise ValueError("TTL must be positive and not null")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds

        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, city_name: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        key = normalize_city_name(city_name)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            age = entry.age(time.monotonic())
            if age > self.ttl_seconds:
                del self._entries[key]
                logging.debug(f"Cache entry expired for '{key}' (age: {age:.3f}s, TTL: {self.ttl_seconds}s)")
                return None
            self._entries.move_to_end(key)
            return entry.value

    def put(self, city_name: str, value: Any) -> None:
        """Store a value, refreshing its timestamp and recency."""
        if value is None:
            raise ValueError("Weather data must not be null")
        key = normalize_city_name(city_name)
        entry = CacheEntry(key=key, value=value, inserted_at=time.monotonic())
        with self._lock:
            if key in self._entries:
                self._entries[key] = entry
                self._entries.move_to_end(key)
                return
            if len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logging.debug(f"Cache full ({self.capacity}), evicted least recently used '{evicted}'")
            self._entries[key] = entry

    def evict(self, city_name: str) -> None:
        key = normalize_city_name(city_name)
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> FrozenSet[str]:
        """Snapshot of the resident keys, including not-yet-read expired ones."""
        with self._lock:
            return frozenset(self._entries)

    def __len__(self) -> int:
        return self.size()
