"""Tests for weather_data module."""
import dataclasses
import pytest
from weather_data import WeatherData


@pytest.fixture
def weather():
    return WeatherData(
        city_name="Zocca",
        condition_main="Clouds",
        condition_description="scattered clouds",
        temp=269.6,
        feels_like=267.57,
        wind_speed=1.38,
        timestamp=1675744800,
        timezone_offset=3600,
        visibility=10000,
        sunrise=1675751262,
        sunset=1675787560,
    )


def test_weather_data_creation():
    """Test creating WeatherData with only the required fields."""
    weather = WeatherData(
        city_name="London",
        condition_main="Rain",
        condition_description="light rain",
        temp=280.0,
        feels_like=278.5,
        wind_speed=3.0,
        timestamp=1609459200,
        timezone_offset=0
    )

    assert weather.city_name == "London"
    assert weather.condition_main == "Rain"
    assert weather.visibility is None
    assert weather.sunrise is None
    assert weather.sunset is None


def test_weather_data_to_dict(weather):
    """Test the public JSON layout."""
    assert weather.to_dict() == {
        "weather": {"main": "Clouds", "description": "scattered clouds"},
        "temperature": {"temp": 269.6, "feels_like": 267.57},
        "visibility": 10000,
        "wind": {"speed": 1.38},
        "datetime": 1675744800,
        "sys": {"sunrise": 1675751262, "sunset": 1675787560},
        "timezone": 3600,
        "name": "Zocca",
    }


def test_weather_data_is_immutable(weather):
    with pytest.raises(dataclasses.FrozenInstanceError):
        weather.temp = 300.0
