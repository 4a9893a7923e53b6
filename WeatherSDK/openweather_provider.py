"""OpenWeather Current Weather API provider implementation."""
import logging
import requests
from typing import Any, Dict, Optional
from weather_provider import (
    ApiKeyError,
    CityNotFoundError,
    NetworkError,
    RateLimitError,
    WeatherProviderBase,
)
from weather_data import WeatherData


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the OpenWeather Current Weather API by city name.

    Performs exactly one HTTP request per call; retrying is left to the
    caller. HTTP statuses are mapped to the SDK error taxonomy.
    """

    BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
    UNITS = "standard"

    def __init__(
        self,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        base_url: Optional[str] = None
    ):
        """
        Initialize OpenWeather provider.

        Args:
            connect_timeout: Seconds to wait for the TCP connection
            read_timeout: Seconds to wait for the response body
            base_url: Override for the endpoint (testing, proxies)
        """
        if connect_timeout <= 0:
            raise ValueError(f"Connection timeout must be positive, was: {connect_timeout}")
        if read_timeout <= 0:
            raise ValueError(f"Read timeout must be positive, was: {read_timeout}")
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.base_url = base_url or self.BASE_URL

    def fetch(self, city_name: str, api_key: str) -> WeatherData:
        """
        Fetch current weather for a city from OpenWeather.

        Returns:
            WeatherData: Current weather information

        Raises:
            ApiKeyError: HTTP 401
            CityNotFoundError: HTTP 404
            RateLimitError: HTTP 429
            NetworkError: Connection failure, bad payload or any other status
        """
        params = {
            "q": city_name.strip(),
            "appid": api_key.strip(),
            "units": self.UNITS,
        }

        try:
            logging.info(f"Making OpenWeather API request for '{city_name}'")
            response = requests.get(
                self.base_url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=(self.connect_timeout, self.read_timeout),
            )
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise NetworkError(
                f"Network error occurred while fetching weather data: {e}",
                self.base_url
            ) from e

        logging.debug(f"API response status: {response.status_code}")
        if response.status_code != 200:
            self._handle_error_response(response)

        return self._parse_weather(response)

    def _handle_error_response(self, response: requests.Response) -> None:
        """Map a non-200 response onto the SDK error taxonomy and raise it."""
        status = response.status_code
        body = response.text or ""

        if status == 401:
            raise ApiKeyError("Invalid or missing API key")
        if status == 404:
            raise CityNotFoundError(f"City not found: {self._extract_error_message(response)}")
        if status == 429:
            retry_after = self._extract_retry_after(response)
            raise RateLimitError(
                f"Rate limit exceeded. Retry after {retry_after} seconds",
                retry_after
            )
        if status >= 500:
            raise NetworkError(f"Server error (HTTP {status}): {body[:200]}", self.base_url, status)
        raise NetworkError(f"Unexpected HTTP status {status}: {body[:200]}", self.base_url, status)

    @staticmethod
    def _extract_error_message(response: requests.Response) -> str:
        try:
            error_data = response.json()
        except ValueError:
            return "Unable to parse error message"
        if isinstance(error_data, dict) and error_data.get("message") is not None:
            return str(error_data["message"])
        return "Unknown error"

    @staticmethod
    def _extract_retry_after(response: requests.Response) -> int:
        header = response.headers.get("Retry-After")
        if header is None:
            return 0
        try:
            return int(header)
        except ValueError:
            logging.warning(f"Invalid Retry-After header format: {header}")
            return 0

    def _parse_weather(self, response: requests.Response) -> WeatherData:
        if not response.text:
            raise NetworkError("Empty or null response body from API", self.base_url)

        try:
            data: Dict[str, Any] = response.json()
            logging.debug(f"API response data keys: {list(data.keys())}")

            weather_array = data.get("weather") or []
            if not weather_array:
                raise NetworkError("Response missing 'weather' array", self.base_url)
            weather = weather_array[0]

            main_data = data.get("main") or {}
            if not main_data:
                raise NetworkError("Response missing 'main' block", self.base_url)

            wind_data = data.get("wind") or {}
            sys_data = data.get("sys") or {}

            weather_data = WeatherData(
                city_name=data.get("name", ""),
                condition_main=weather.get("main", "Unknown"),
                condition_description=weather.get("description", ""),
                temp=main_data.get("temp", 0.0),
                feels_like=main_data.get("feels_like", 0.0),
                wind_speed=wind_data.get("speed", 0.0),
                timestamp=data.get("dt", 0),
                timezone_offset=data.get("timezone", 0),
                visibility=data.get("visibility"),
                sunrise=sys_data.get("sunrise"),
                sunset=sys_data.get("sunset"),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to parse API response: {e}", exc_info=True)
            raise NetworkError(
                f"Failed to parse weather data from response: {e}",
                self.base_url
            ) from e

        logging.info(f"Parsed weather for '{weather_data.city_name}': {weather_data.condition_main}")
        return weather_data
