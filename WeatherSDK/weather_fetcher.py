"""Fetch pipeline: validation, bounded fixed-delay retry and failure classification."""
import enum
import logging
import threading
from typing import Optional
from weather_provider import (
    ApiKeyError,
    CityNotFoundError,
    FetchInterruptedError,
    NetworkError,
    RateLimitError,
    WeatherProviderBase,
)
from weather_data import WeatherData


class FetchOutcome(enum.Enum):
    """Result of one attempt, deciding whether the retry loop continues."""
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify_error(error: BaseException) -> FetchOutcome:
    """
    Classify a failed attempt.

    Connection-level failures and 5xx responses are retryable. Auth,
    not-found, rate-limit, other 4xx responses and anything unknown are
    terminal.
    """
    if isinstance(error, (ApiKeyError, CityNotFoundError, RateLimitError, FetchInterruptedError)):
        return FetchOutcome.FATAL
    if isinstance(error, NetworkError):
        if error.is_server_error or error.is_connection_error:
            return FetchOutcome.RETRYABLE
        return FetchOutcome.FATAL
    return FetchOutcome.FATAL


class WeatherFetcher:
    """
    Wraps a weather provider with parameter validation and bounded retry.

    Up to max_attempts calls are made with a fixed delay between them.
    Terminal failures surface on first occurrence; retryable ones surface
    as a single NetworkError once the budget is spent.
    """

    def __init__(
        self,
        provider: WeatherProviderBase,
        max_attempts: int = 3,
        retry_delay_ms: int = 500
    ):
        """
        Initialize the fetch pipeline.

        Args:
            provider: Weather provider performing the actual request
            max_attempts: Total number of tries per fetch (at least 1)
            retry_delay_ms: Fixed delay between attempts in milliseconds
        """
        if max_attempts < 1:
            raise ValueError(f"Max attempts must be at least 1, was: {max_attempts}")
        if retry_delay_ms <= 0:
            raise ValueError(f"Retry delay must be positive, was: {retry_delay_ms}")
        self.provider = provider
        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Abort pending retries of every fetch not given its own cancel event."""
        self._cancel_event.set()

    def fetch(
        self,
        city_name: str,
        api_key: str,
        cancel_event: Optional[threading.Event] = None
    ) -> WeatherData:
        """
        Fetch weather for a city, retrying transient failures.

        Args:
            city_name: City to look up
            api_key: Credential passed to the provider
            cancel_event: Optional event that aborts the fetch when set

        Returns:
            WeatherData: Decoded weather record

        Raises:
            ValueError: If city_name or api_key is blank
            FetchInterruptedError: If cancelled before or between attempts
            WeatherProviderError: Terminal failure, or NetworkError after retries
        """
        self._validate(city_name, api_key)
        cancel = cancel_event if cancel_event is not None else self._cancel_event

        last_error: Optional[NetworkError] = None
        for attempt in range(1, self.max_attempts + 1):
            if cancel.is_set():
                raise FetchInterruptedError("Request was interrupted while fetching weather data")
            try:
                logging.debug(f"Weather fetch attempt {attempt}/{self.max_attempts} for '{city_name}'")
                return self.provider.fetch(city_name, api_key)
            except NetworkError as e:
                if classify_error(e) is FetchOutcome.FATAL:
                    raise
                last_error = e
                logging.warning(f"Weather fetch attempt {attempt}/{self.max_attempts} failed ({e.error_category}): {e}")

            if attempt < self.max_attempts:
                logging.debug(f"Retrying in {self.retry_delay_ms}ms...")
                if cancel.wait(self.retry_delay_ms / 1000.0):
                    raise FetchInterruptedError(
                        "Request was interrupted while fetching weather data"
                    ) from last_error

        logging.error(f"Failed to fetch weather for '{city_name}' after {self.max_attempts} attempts")
        raise NetworkError(
            f"Failed to fetch weather data after {self.max_attempts} attempts. "
            f"Original error: {last_error}",
            last_error.endpoint_url,
            last_error.status_code
        ) from last_error

    @staticmethod
    def _validate(city_name: str, api_key: str) -> None:
        if not isinstance(city_name, str) or not city_name.strip():
            raise ValueError("City name must not be null or empty")
        if not isinstance(api_key, str) or not api_key.strip():
            raise ValueError("API key must not be null or empty")
