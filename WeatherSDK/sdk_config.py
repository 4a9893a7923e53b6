"""SDK configuration: immutable settings, a fluent builder and an environment loader."""
import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from weather_provider import ConfigurationError


MIN_POLLING_INTERVAL_SECONDS = 60


class SDKMode(enum.Enum):
    """How cached weather is kept up to date."""
    ON_DEMAND = "on-demand"
    POLLING = "polling"

    @property
    def requires_background_thread(self) -> bool:
        return self is SDKMode.POLLING

    @classmethod
    def parse(cls, value: str) -> "SDKMode":
        normalized = value.strip().lower().replace("_", "-")
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ConfigurationError(f"Unknown SDK mode: {value!r}", "mode")

    def __str__(self) -> str:
        return self.value


def _require_positive(value, name: str, message: str) -> None:
    if value is None or value <= 0:
        raise ConfigurationError(message, name)


@dataclass(frozen=True)
class SDKConfiguration:
    """
    Immutable settings for one SDK instance.

    Durations are in seconds except retry_delay_ms. The API key is
    stripped of surrounding whitespace and masked in repr().
    """
    api_key: str = field(repr=False)
    mode: SDKMode = SDKMode.ON_DEMAND
    polling_interval_seconds: float = 300.0
    cache_size: int = 10
    cache_ttl_seconds: float = 600.0
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 10.0
    max_attempts: int = 3
    retry_delay_ms: int = 500

    def __post_init__(self):
        if not isinstance(self.api_key, str) or not self.api_key.strip():
            raise ConfigurationError("API key must not be null or empty", "api_key")
        object.__setattr__(self, "api_key", self.api_key.strip())
        if not isinstance(self.mode, SDKMode):
            raise ConfigurationError("SDK mode must not be null", "mode")
        _require_positive(self.polling_interval_seconds, "polling_interval_seconds", "Polling interval must be positive")
        _require_positive(self.cache_size, "cache_size", "Cache size must be positive")
        _require_positive(self.cache_ttl_seconds, "cache_ttl_seconds", "Cache TTL must be positive")
        _require_positive(self.connect_timeout_seconds, "connect_timeout_seconds", "Connection timeout must be positive")
        _require_positive(self.read_timeout_seconds, "read_timeout_seconds", "Read timeout must be positive")
        _require_positive(self.max_attempts, "max_attempts", "Max attempts must be at least 1")
        _require_positive(self.retry_delay_ms, "retry_delay_ms", "Retry delay must be positive")

    # Names used by the cache/fetch/refresh core
    @property
    def capacity(self) -> int:
        return self.cache_size

    @property
    def ttl_seconds(self) -> float:
        return self.cache_ttl_seconds

    @property
    def refresh_enabled(self) -> bool:
        return self.mode.requires_background_thread

    @property
    def period_seconds(self) -> float:
        return self.polling_interval_seconds

    @property
    def credential(self) -> str:
        return self.api_key

    def __repr__(self) -> str:
        return (
            f"SDKConfiguration(api_key=***, mode={self.mode}, "
            f"polling_interval_seconds={self.polling_interval_seconds}, cache_size={self.cache_size}, "
            f"cache_ttl_seconds={self.cache_ttl_seconds}, connect_timeout_seconds={self.connect_timeout_seconds}, "
            f"read_timeout_seconds={self.read_timeout_seconds}, max_attempts={self.max_attempts}, "
            f"retry_delay_ms={self.retry_delay_ms})"
        )


class WeatherSDKBuilder:
    """
    Fluent builder for SDKConfiguration.

    Each setter validates its own argument; build() adds the checks that
    span several settings.

    Example:
        config = WeatherSDKBuilder().api_key("...").mode(SDKMode.POLLING).build()
    """

    def __init__(self):
        self._api_key: Optional[str] = None
        self._mode = SDKMode.ON_DEMAND
        self._polling_interval_seconds = 300.0
        self._cache_size = 10
        self._cache_ttl_seconds = 600.0
        self._connect_timeout_seconds = 5.0
        self._read_timeout_seconds = 10.0
        self._max_attempts = 3
        self._retry_delay_ms = 500

    def api_key(self, value: str) -> "WeatherSDKBuilder":
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError("API key must not be null or empty", "api_key")
        self._api_key = value.strip()
        return self

    def mode(self, value: SDKMode) -> "WeatherSDKBuilder":
        if isinstance(value, str):
            value = SDKMode.parse(value)
        if not isinstance(value, SDKMode):
            raise ConfigurationError("SDK mode must not be null", "mode")
        self._mode = value
        return self

    def polling_interval(self, seconds: float) -> "WeatherSDKBuilder":
        _require_positive(seconds, "polling_interval_seconds", "Polling interval must be positive")
        self._polling_interval_seconds = seconds
        return self

    def cache_size(self, size: int) -> "WeatherSDKBuilder":
        _require_positive(size, "cache_size", "Cache size must be positive")
        self._cache_size = size
        return self

    def cache_ttl(self, seconds: float) -> "WeatherSDKBuilder":
        _require_positive(seconds, "cache_ttl_seconds", "Cache TTL must be positive")
        self._cache_ttl_seconds = seconds
        return self

    def connect_timeout(self, seconds: float) -> "WeatherSDKBuilder":
        _require_positive(seconds, "connect_timeout_seconds", "Connection timeout must be positive")
        self._connect_timeout_seconds = seconds
        return self

    def read_timeout(self, seconds: float) -> "WeatherSDKBuilder":
        _require_positive(seconds, "read_timeout_seconds", "Read timeout must be positive")
        self._read_timeout_seconds = seconds
        return self

    def max_attempts(self, attempts: int) -> "WeatherSDKBuilder":
        _require_positive(attempts, "max_attempts", "Max attempts must be at least 1")
        self._max_attempts = attempts
        return self

    def retry_delay_ms(self, delay_ms: int) -> "WeatherSDKBuilder":
        _require_positive(delay_ms, "retry_delay_ms", "Retry delay must be positive")
        self._retry_delay_ms = delay_ms
        return self

    def build(self) -> SDKConfiguration:
        """
        Validate the collected settings and create the configuration.

        Raises:
            ConfigurationError: If a required setting is missing or settings conflict
        """
        if not self._api_key:
            raise ConfigurationError("API key is required and must not be empty", "api_key")
        if self._read_timeout_seconds < self._connect_timeout_seconds:
            raise ConfigurationError(
                "Read timeout must be greater than or equal to connection timeout",
                "read_timeout_seconds"
            )
        if self._mode is SDKMode.POLLING and self._polling_interval_seconds < MIN_POLLING_INTERVAL_SECONDS:
            raise ConfigurationError(
                f"Polling interval too short for POLLING mode (minimum {MIN_POLLING_INTERVAL_SECONDS}s)",
                "polling_interval_seconds"
            )
        return SDKConfiguration(
            api_key=self._api_key,
            mode=self._mode,
            polling_interval_seconds=self._polling_interval_seconds,
            cache_size=self._cache_size,
            cache_ttl_seconds=self._cache_ttl_seconds,
            connect_timeout_seconds=self._connect_timeout_seconds,
            read_timeout_seconds=self._read_timeout_seconds,
            max_attempts=self._max_attempts,
            retry_delay_ms=self._retry_delay_ms,
        )


def _env_number(name: str, cast, setter) -> None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}", name) from exc
    setter(value)


def load_config_from_env(dotenv_path: Optional[str] = None) -> WeatherSDKBuilder:
    """
    Read SDK settings from the environment (and a .env file if present).

    Returns a builder so callers can still override individual settings
    before calling build().

    Raises:
        ConfigurationError: If WEATHER_API_KEY is missing or a value does not parse
    """
    load_dotenv(dotenv_path)
    api_key = os.getenv("WEATHER_API_KEY")
    if not api_key:
        raise ConfigurationError("Missing WEATHER_API_KEY in environment", "api_key")

    builder = WeatherSDKBuilder().api_key(api_key)
    mode = os.getenv("WEATHER_SDK_MODE")
    if mode:
        builder.mode(SDKMode.parse(mode))
    _env_number("WEATHER_POLLING_INTERVAL", float, builder.polling_interval)
    _env_number("WEATHER_CACHE_SIZE", int, builder.cache_size)
    _env_number("WEATHER_CACHE_TTL", float, builder.cache_ttl)
    _env_number("WEATHER_CONNECT_TIMEOUT", float, builder.connect_timeout)
    _env_number("WEATHER_READ_TIMEOUT", float, builder.read_timeout)
    _env_number("WEATHER_MAX_ATTEMPTS", int, builder.max_attempts)
    _env_number("WEATHER_RETRY_DELAY_MS", int, builder.retry_delay_ms)

    logging.info(f"Configuration loaded from environment (mode={mode or SDKMode.ON_DEMAND})")
    return builder
