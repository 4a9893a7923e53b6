"""Tests for the SDK instance registry."""
import pytest
from sdk_registry import SDKRegistry
from sdk_config import SDKConfiguration
from weather_provider import ConfigurationError, SDKShutdownError, WeatherProviderBase
from weather_service import WeatherService


class NullProvider(WeatherProviderBase):
    def fetch(self, city_name, api_key):
        raise AssertionError("no network in registry tests")


@pytest.fixture
def registry():
    registry = SDKRegistry(service_factory=lambda config: WeatherService(config, NullProvider()))
    yield registry
    registry.clear()


def test_create_and_get_instance(registry):
    service = registry.create_instance("key-1")

    assert isinstance(service, WeatherService)
    assert service.config.api_key == "key-1"
    assert registry.get_instance("key-1") is service
    assert registry.size() == 1
    assert registry.api_keys() == frozenset({"key-1"})


def test_create_with_explicit_config(registry):
    config = SDKConfiguration(api_key="key-2", cache_size=3)
    service = registry.create_instance("key-2", config)

    assert service.cache.capacity == 3


def test_duplicate_key_rejected(registry):
    registry.create_instance("key-1")
    with pytest.raises(ConfigurationError) as exc_info:
        registry.create_instance("key-1")
    assert "already registered" in str(exc_info.value)
    assert len(registry) == 1


@pytest.mark.parametrize("api_key", [None, "", "   "])
def test_blank_key_rejected(registry, api_key):
    with pytest.raises(ConfigurationError):
        registry.create_instance(api_key)


def test_key_whitespace_is_ignored(registry):
    service = registry.create_instance("  key-1 ")

    assert service.config.api_key == "key-1"
    assert registry.get_instance("key-1") is service
    assert registry.api_keys() == frozenset({"key-1"})
    with pytest.raises(ConfigurationError):
        registry.create_instance("key-1")

    registry.delete_instance(" key-1")
    assert service.is_shutdown


def test_get_unknown_instance(registry):
    assert registry.get_instance("nope") is None
    assert registry.get_instance(None) is None


def test_delete_instance_shuts_it_down(registry):
    service = registry.create_instance("key-1")

    registry.delete_instance("key-1")

    assert service.is_shutdown
    assert registry.get_instance("key-1") is None
    with pytest.raises(SDKShutdownError):
        service.get_weather("London")


def test_delete_unknown_instance(registry):
    with pytest.raises(ValueError):
        registry.delete_instance("missing")
    with pytest.raises(ValueError):
        registry.delete_instance(None)


def test_clear_shuts_down_everything(registry):
    first = registry.create_instance("key-1")
    second = registry.create_instance("key-2")

    registry.clear()

    assert registry.size() == 0
    assert first.is_shutdown
    assert second.is_shutdown


def test_registries_are_independent():
    one = SDKRegistry(service_factory=lambda config: WeatherService(config, NullProvider()))
    two = SDKRegistry(service_factory=lambda config: WeatherService(config, NullProvider()))
    try:
        one.create_instance("shared-key")
        two.create_instance("shared-key")
        assert one.get_instance("shared-key") is not two.get_instance("shared-key")
    finally:
        one.clear()
        two.clear()
