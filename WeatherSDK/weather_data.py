"""Weather payload model - pure data structure independent of the HTTP layer."""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class WeatherData:
    """Current weather for one city, as decoded from the upstream API."""
    city_name: str
    condition_main: str  # e.g., "Clouds", "Rain", "Clear"
    condition_description: str  # e.g., "broken clouds", "light rain"
    temp: float  # Kelvin (standard units, no conversion is applied)
    feels_like: float
    wind_speed: float  # m/s
    timestamp: int  # UNIX timestamp (UTC)
    timezone_offset: int  # Offset from UTC in seconds

    visibility: Optional[int] = None  # meters
    sunrise: Optional[int] = None
    sunset: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the record in the SDK's public JSON layout."""
        return {
            "weather": {
                "main": self.condition_main,
                "description": self.condition_description,
            },
            "temperature": {
                "temp": self.temp,
                "feels_like": self.feels_like,
            },
            "visibility": self.visibility,
            "wind": {
                "speed": self.wind_speed,
            },
            "datetime": self.timestamp,
            "sys": {
                "sunrise": self.sunrise,
                "sunset": self.sunset,
            },
            "timezone": self.timezone_offset,
            "name": self.city_name,
        }
