"""Weather service: get-or-fetch entry point with caching, retry and background refresh."""
import logging
import threading
import time
from concurrent.futures import Future
from typing import Dict, Optional
from weather_provider import WeatherProviderBase, SDKShutdownError
from openweather_provider import OpenWeatherProvider
from weather_data import WeatherData
from weather_cache import WeatherCache, normalize_city_name
from weather_fetcher import WeatherFetcher
from refresh_scheduler import RefreshScheduler
from sdk_metrics import MetricsRecorder, SDKMetrics
from sdk_config import SDKConfiguration


class WeatherService:
    """
    Service that puts a cache, a retrying fetcher and optional background
    refresh in front of a weather provider.

    Lookups are served from the cache while fresh (default: 10 minutes).
    On a miss the provider is called once per city even when several
    threads ask for the same city at the same time; the others wait for
    that result. In POLLING mode every cached city is refreshed in the
    background so lookups keep hitting the cache.

    Thread-safe; no external locking is needed.
    """

    def __init__(
        self,
        config: SDKConfiguration,
        provider: Optional[WeatherProviderBase] = None
    ):
        """
        Initialize weather service.

        Args:
            config: Validated SDK configuration
            provider: Weather provider to use (defaults to OpenWeather)
        """
        if config is None:
            raise ValueError("Configuration must not be null")
        if provider is None:
            provider = OpenWeatherProvider(
                connect_timeout=config.connect_timeout_seconds,
                read_timeout=config.read_timeout_seconds,
            )

        self.config = config
        self.provider = provider
        self.cache = WeatherCache(capacity=config.capacity, ttl_seconds=config.ttl_seconds)
        self.fetcher = WeatherFetcher(
            provider,
            max_attempts=config.max_attempts,
            retry_delay_ms=config.retry_delay_ms,
        )
        self.metrics = MetricsRecorder()

        self._closed = False
        self._shutdown_lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}
        self._in_flight_lock = threading.Lock()

        self.scheduler: Optional[RefreshScheduler] = None
        if config.refresh_enabled:
            self.scheduler = RefreshScheduler(
                cache=self.cache,
                fetcher=self.fetcher,
                api_key=config.credential,
                metrics=self.metrics,
                period_seconds=config.period_seconds,
            )
            self.scheduler.start()

        logging.info(f"Weather service ready ({config!r})")

    def get_weather(self, city_name: str) -> WeatherData:
        """
        Get current weather for a city, using the cache when still fresh.

        Args:
            city_name: City name; case and surrounding whitespace are ignored

        Returns:
            WeatherData: Cached or freshly fetched weather

        Raises:
            SDKShutdownError: If the service has been shut down
            ValueError: If city_name is blank
            WeatherProviderError: Classified fetch failure, unchanged
        """
        self._ensure_open()
        city = normalize_city_name(city_name)
        start = time.monotonic()

        cached = self.cache.get(city)
        if cached is not None:
            logging.debug(f"Using cached weather data for '{city}'")
            self.metrics.record_cache_hit()
            self.metrics.record_outcome(True, self._elapsed_ms(start))
            return cached

        self.metrics.record_cache_miss()
        success = False
        try:
            weather = self._fetch_once(city)
            success = True
            return weather
        finally:
            self.metrics.record_outcome(success, self._elapsed_ms(start))

    def _fetch_once(self, city: str) -> WeatherData:
        """Fetch and cache a city, sharing one upstream call between concurrent callers."""
        with self._in_flight_lock:
            pending = self._in_flight.get(city)
            if pending is None:
                # A fetch may have completed between our cache miss and here
                cached = self.cache.get(city)
                if cached is not None:
                    return cached
                future: Future = Future()
                self._in_flight[city] = future

        if pending is not None:
            logging.debug(f"Waiting for in-flight fetch of '{city}'")
            return pending.result()

        try:
            logging.info(f"Fetching weather data for '{city}' from provider...")
            weather = self.fetcher.fetch(city, self.config.credential)
            with self._shutdown_lock:
                if not self._closed:
                    self.cache.put(city, weather)
            future.set_result(weather)
            return weather
        except BaseException as e:
            future.set_exception(e)
            raise
        finally:
            with self._in_flight_lock:
                self._in_flight.pop(city, None)

    def get_metrics(self) -> SDKMetrics:
        """
        Snapshot of usage and performance counters.

        Raises:
            SDKShutdownError: If the service has been shut down
        """
        self._ensure_open()
        return self.metrics.snapshot()

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        """Stop background refresh and release cached data. Idempotent."""
        with self._shutdown_lock:
            if self._closed:
                return
            self._closed = True

        if self.scheduler is not None:
            self.scheduler.shutdown()
        self.cache.clear()
        logging.info("Weather service shut down")

    def close(self) -> None:
        self.shutdown()

    def __enter__(self) -> "WeatherService":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.shutdown()

    def _ensure_open(self) -> None:
        if self._closed:
            raise SDKShutdownError("SDK instance has been shut down")

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.monotonic() - start) * 1000.0
