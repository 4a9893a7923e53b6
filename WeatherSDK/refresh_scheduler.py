"""Background refresh loop that keeps cached weather entries warm."""
import logging
import threading
import time
from typing import Optional
from weather_cache import WeatherCache
from weather_fetcher import WeatherFetcher
from sdk_metrics import MetricsRecorder


class RefreshScheduler:
    """
    Re-fetches every cached city at a fixed rate on a daemon thread.

    Each cycle works on a snapshot of the cache keys and refreshes them one
    after another. A failing city is logged and counted as a failed request
    but never stops the cycle, and an unexpected error in a cycle never
    stops the thread.
    """

    THREAD_NAME = "WeatherSDK-Polling-Thread"

    def __init__(
        self,
        cache: WeatherCache,
        fetcher: WeatherFetcher,
        api_key: str,
        metrics: MetricsRecorder,
        period_seconds: float,
        shutdown_timeout_seconds: float = 5.0
    ):
        if period_seconds <= 0:
            raise ValueError(f"Polling interval must be positive, was: {period_seconds}")
        self.cache = cache
        self.fetcher = fetcher
        self.api_key = api_key
        self.metrics = metrics
        self.period_seconds = period_seconds
        self.shutdown_timeout_seconds = shutdown_timeout_seconds

        self._stop_event = threading.Event()
        # Set only when a graceful stop times out; aborts in-flight retry waits
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.cycles_completed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        with self._lock:
            if self._stop_event.is_set():
                raise RuntimeError("Refresh scheduler has been shut down")
            if self._thread is not None:
                return
            self._thread = threading.Thread(target=self._run, name=self.THREAD_NAME, daemon=True)
            self._thread.start()
        logging.info(f"Refresh scheduler started (period: {self.period_seconds}s)")

    def _run(self) -> None:
        next_run = time.monotonic()
        while not self._stop_event.is_set():
            self.run_cycle()
            next_run += self.period_seconds
            delay = next_run - time.monotonic()
            if delay < 0:
                # Cycle overran the period; skip the missed slots
                next_run = time.monotonic()
                delay = 0
            if self._stop_event.wait(delay):
                break
        logging.debug("Refresh scheduler thread exiting")

    def run_cycle(self) -> None:
        """Refresh every city currently in the cache once."""
        try:
            cities = sorted(self.cache.keys())
            logging.debug(f"Refreshing {len(cities)} cached cities")
            refreshed = 0
            for city in cities:
                if self._stop_event.is_set():
                    break
                if self._refresh_city(city):
                    refreshed += 1
            self.cycles_completed += 1
            if cities:
                logging.info(f"Refresh cycle finished: {refreshed}/{len(cities)} cities updated")
        except Exception as e:
            logging.exception(f"Unexpected error during polling: {e}")
            self.metrics.record_outcome(False, 0.0)

    def _refresh_city(self, city: str) -> bool:
        start = time.monotonic()
        try:
            fresh = self.fetcher.fetch(city, self.api_key, cancel_event=self._cancel_event)
            with self._lock:
                if self._stop_event.is_set():
                    logging.debug(f"Scheduler stopped, discarding refreshed weather for city: {city}")
                    return False
                self.cache.put(city, fresh)
        except Exception as e:
            logging.warning(f"Failed to update weather for city: {city}, error: {e}")
            self.metrics.record_outcome(False, (time.monotonic() - start) * 1000.0)
            return False
        self.metrics.record_outcome(True, (time.monotonic() - start) * 1000.0)
        return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop the scheduler.

        No new cycle or city is started once this is called. An in-flight
        cycle gets up to `timeout` seconds to finish, after which pending
        retry waits are cancelled. Safe to call more than once.
        """
        timeout = self.shutdown_timeout_seconds if timeout is None else timeout
        with self._lock:
            self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return

        thread.join(timeout)
        if thread.is_alive():
            logging.warning(f"Refresh cycle still running after {timeout}s, cancelling")
            self._cancel_event.set()
            thread.join(timeout)
            if thread.is_alive():
                logging.warning("Polling thread did not terminate")
                return
        logging.info("Refresh scheduler stopped")
