"""Weather provider abstraction and the error taxonomy shared by the SDK."""
from abc import ABC, abstractmethod
from typing import Optional
from weather_data import WeatherData


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers (the fetcher seam)."""

    @abstractmethod
    def fetch(self, city_name: str, api_key: str) -> WeatherData:
        """
        Perform one request for the current weather of a city.

        Args:
            city_name: Normalized city name
            api_key: Credential for the upstream service

        Returns:
            WeatherData: Decoded weather record

        Raises:
            WeatherProviderError: A classified failure (see subclasses)
        """
        pass


class WeatherProviderError(Exception):
    """Base exception for every classified weather SDK failure."""

    error_code = "WEATHER_SDK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def formatted_message(self) -> str:
        return f"{self.error_code}: {self}"


class ApiKeyError(WeatherProviderError):
    """The upstream service rejected the API key (HTTP 401)."""

    error_code = "API_KEY_ERROR"


class CityNotFoundError(WeatherProviderError):
    """The upstream service does not know the requested city (HTTP 404)."""

    error_code = "CITY_NOT_FOUND"


class RateLimitError(WeatherProviderError):
    """The upstream rate limit was hit (HTTP 429)."""

    error_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str, retry_after_seconds: int = 0):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class NetworkError(WeatherProviderError):
    """
    Connection failure, undecodable response or unexpected HTTP status.

    A missing status code means the request never produced a usable
    HTTP response (connection, timeout or decoding failure).
    """

    error_code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        endpoint_url: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.endpoint_url = endpoint_url
        self.status_code = status_code

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_connection_error(self) -> bool:
        return self.status_code is None

    @property
    def error_category(self) -> str:
        if self.is_connection_error:
            return "Connection Error"
        if self.is_server_error:
            return "Server Error (5xx)"
        if self.is_client_error:
            return "Client Error (4xx)"
        return "HTTP Error"

    def __str__(self) -> str:
        details = []
        if self.endpoint_url is not None:
            details.append(f"Endpoint: {self.endpoint_url}")
        if self.status_code is not None:
            details.append(f"Status: {self.status_code}")
        if not details:
            return self.message
        return f"{self.message} [{', '.join(details)}]"


class FetchInterruptedError(WeatherProviderError):
    """A fetch was cancelled while waiting between attempts."""

    error_code = "INTERRUPTED"


class ConfigurationError(WeatherProviderError):
    """Invalid SDK configuration value."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class SDKShutdownError(RuntimeError):
    """Raised when an SDK instance is used after shutdown()."""
    pass
