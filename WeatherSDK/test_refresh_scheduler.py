"""Tests for the background refresh scheduler."""
import threading
import time
import pytest
from refresh_scheduler import RefreshScheduler
from weather_cache import WeatherCache
from weather_fetcher import WeatherFetcher
from weather_provider import CityNotFoundError, NetworkError, WeatherProviderBase
from sdk_metrics import MetricsRecorder


class CountingProvider(WeatherProviderBase):
    """Returns '<city>#<n>' and fails for the configured cities."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, city_name, api_key):
        with self._lock:
            self.calls.append(city_name)
            count = self.calls.count(city_name)
        if city_name in self.failing:
            raise CityNotFoundError(f"City not found: {city_name}")
        return f"{city_name}#{count}"


class SlowProvider(WeatherProviderBase):
    """Always fails transiently so the fetcher sits in its retry wait."""

    def __init__(self):
        self.started = threading.Event()

    def fetch(self, city_name, api_key):
        self.started.set()
        raise NetworkError("connection refused")


class BrokenCache(WeatherCache):
    def __init__(self):
        super().__init__(capacity=3, ttl_seconds=60)
        self.key_calls = 0

    def keys(self):
        self.key_calls += 1
        raise RuntimeError("enumeration failed")


def make_scheduler(provider, cache=None, period=60.0, attempts=1, delay_ms=10):
    if cache is None:
        cache = WeatherCache(capacity=10, ttl_seconds=600)
    metrics = MetricsRecorder()
    fetcher = WeatherFetcher(provider, max_attempts=attempts, retry_delay_ms=delay_ms)
    scheduler = RefreshScheduler(cache, fetcher, "key", metrics, period_seconds=period,
                                 shutdown_timeout_seconds=0.5)
    return scheduler, cache, metrics


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_cycle_refreshes_every_cached_city():
    provider = CountingProvider()
    scheduler, cache, metrics = make_scheduler(provider)
    cache.put("London", "stale")
    cache.put("Paris", "stale")

    scheduler.run_cycle()

    assert sorted(provider.calls) == ["london", "paris"]
    assert cache.get("london") == "london#1"
    assert cache.get("paris") == "paris#1"
    assert metrics.snapshot().successful_requests == 2


def test_failing_city_does_not_stop_cycle():
    provider = CountingProvider(failing={"berlin"})
    scheduler, cache, metrics = make_scheduler(provider)
    for city in ("Amsterdam", "Berlin", "Cairo"):
        cache.put(city, "stale")

    scheduler.run_cycle()

    assert sorted(provider.calls) == ["amsterdam", "berlin", "cairo"]
    assert cache.get("amsterdam") == "amsterdam#1"
    assert cache.get("berlin") == "stale"
    assert cache.get("cairo") == "cairo#1"
    snapshot = metrics.snapshot()
    assert snapshot.successful_requests == 2
    assert snapshot.failed_requests == 1


def test_enumeration_failure_is_recorded_and_thread_survives():
    cache = BrokenCache()
    scheduler, _, metrics = make_scheduler(CountingProvider(), cache=cache, period=0.05)

    scheduler.start()
    try:
        assert wait_for(lambda: cache.key_calls >= 3)
        assert scheduler.running
    finally:
        scheduler.shutdown()

    assert metrics.snapshot().failed_requests >= 3


def test_background_thread_runs_periodically():
    provider = CountingProvider()
    scheduler, cache, _ = make_scheduler(provider, period=0.05)
    cache.put("Rome", "stale")

    scheduler.start()
    try:
        assert wait_for(lambda: provider.calls.count("rome") >= 3)
        assert cache.get("rome").startswith("rome#")
    finally:
        scheduler.shutdown()

    assert not scheduler.running


def test_empty_cache_cycle_is_noop():
    provider = CountingProvider()
    scheduler, _, metrics = make_scheduler(provider)

    scheduler.run_cycle()

    assert provider.calls == []
    assert metrics.snapshot().total_requests == 0
    assert scheduler.cycles_completed == 1


def test_shutdown_cancels_in_flight_retry_wait():
    provider = SlowProvider()
    scheduler, cache, metrics = make_scheduler(provider, attempts=5, delay_ms=30000)
    cache.put("Lima", "stale")

    scheduler.start()
    assert provider.started.wait(2.0)

    start = time.monotonic()
    scheduler.shutdown(timeout=0.2)
    elapsed = time.monotonic() - start

    # One bounded wait, then forced cancellation of the retry delay
    assert elapsed < 2.0
    assert not scheduler.running
    assert metrics.snapshot().failed_requests == 1


class HangingProvider(WeatherProviderBase):
    """Blocks inside fetch until released, ignoring cancellation."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch(self, city_name, api_key):
        self.entered.set()
        self.release.wait(2.0)
        return f"{city_name}#fresh"


def test_refresh_finishing_after_shutdown_does_not_write_cache():
    provider = HangingProvider()
    scheduler, cache, metrics = make_scheduler(provider)
    cache.put("Oslo", "stale")

    scheduler.start()
    assert provider.entered.wait(2.0)

    scheduler.shutdown(timeout=0.05)
    thread = scheduler._thread
    assert thread.is_alive()

    provider.release.set()
    thread.join(2.0)

    assert not thread.is_alive()
    assert cache.get("oslo") == "stale"
    assert metrics.snapshot().successful_requests == 0


def test_shutdown_is_idempotent_and_terminal():
    scheduler, _, _ = make_scheduler(CountingProvider())
    scheduler.start()
    scheduler.shutdown()
    scheduler.shutdown()

    with pytest.raises(RuntimeError):
        scheduler.start()


def test_shutdown_without_start():
    scheduler, _, _ = make_scheduler(CountingProvider())
    scheduler.shutdown()
    assert not scheduler.running


def test_invalid_period():
    with pytest.raises(ValueError):
        make_scheduler(CountingProvider(), period=0)
