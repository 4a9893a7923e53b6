"""Registry of independently configured weather service instances, keyed by API key."""
import logging
import threading
from typing import Callable, Dict, FrozenSet, Optional
from weather_provider import ConfigurationError
from weather_service import WeatherService
from sdk_config import SDKConfiguration


class SDKRegistry:
    """
    Owns one WeatherService per API key.

    The application creates the registry and controls its lifetime;
    clear() shuts every registered service down.
    """

    def __init__(self, service_factory: Callable[[SDKConfiguration], WeatherService] = WeatherService):
        self._service_factory = service_factory
        self._instances: Dict[str, WeatherService] = {}
        self._lock = threading.Lock()

    def create_instance(self, api_key: str, config: Optional[SDKConfiguration] = None) -> WeatherService:
        """
        Create and register a service for an API key.

        Args:
            api_key: Registry key, also used as credential when no config is given
            config: Configuration for the new service (defaults built from api_key)

        Raises:
            ConfigurationError: If the key is blank or already registered
        """
        if not isinstance(api_key, str) or not api_key.strip():
            raise ConfigurationError("API key must not be null or empty", "api_key")
        api_key = api_key.strip()
        if config is None:
            config = SDKConfiguration(api_key=api_key)

        with self._lock:
            if api_key in self._instances:
                raise ConfigurationError("API key already registered", "api_key")
            service = self._service_factory(config)
            self._instances[api_key] = service
        logging.info(f"Registered weather service ({len(self._instances)} total)")
        return service

    def get_instance(self, api_key: Optional[str]) -> Optional[WeatherService]:
        if not isinstance(api_key, str):
            return None
        with self._lock:
            return self._instances.get(api_key.strip())

    def delete_instance(self, api_key: str) -> None:
        """
        Remove a service and shut it down.

        Raises:
            ValueError: If the key is missing or not registered
        """
        if api_key is None:
            raise ValueError("API key must not be null")
        with self._lock:
            service = self._instances.pop(api_key.strip(), None)
        if service is None:
            raise ValueError("API key not found")
        service.shutdown()

    def api_keys(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._instances)

    def size(self) -> int:
        with self._lock:
            return len(self._instances)

    def __len__(self) -> int:
        return self.size()

    def clear(self) -> None:
        with self._lock:
            services = list(self._instances.values())
            self._instances.clear()
        for service in services:
            service.shutdown()
        logging.info(f"Registry cleared, {len(services)} services shut down")
