"""
Weather provider using the Open-Meteo API

Config example (config.yaml):
    providers:
      weather:
        interval: 900
        options:
          latitude: 52.23   # optional, else the geolocation field is used
          longitude: 21.01
"""

from typing import Optional, Tuple

from zoom_sync.models.enums import FieldID, WeatherIcon
from zoom_sync.models.errors import TransientProviderError
from zoom_sync.models.reading import WeatherReport
from zoom_sync.providers.http import HttpProvider
from zoom_sync.providers.registry import register_provider

DEFAULT_URL = "https://api.open-meteo.com/v1/forecast"

# WMO weather interpretation codes -> description
# https://open-meteo.com/en/docs#weathervariables
WMO_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight showers",
    81: "Moderate showers",
    82: "Violent showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def wmo_to_icon(code: int, is_day: bool) -> WeatherIcon:
    """Map a WMO code onto the nine icons the screen module knows"""
    if code in (0, 1):
        return WeatherIcon.DAY_CLEAR if is_day else WeatherIcon.NIGHT_CLEAR
    if code == 2:
        return WeatherIcon.DAY_PARTLY_CLOUDY if is_day else WeatherIcon.NIGHT_PARTLY_CLEAR
    if code in (3, 45, 48):
        return WeatherIcon.CLOUDY
    if code in (51, 53, 80):
        return WeatherIcon.DAY_PARTLY_RAINY if is_day else WeatherIcon.RAINY
    if 51 <= code <= 67 or code in (81, 82):
        return WeatherIcon.RAINY
    if 71 <= code <= 77 or code in (85, 86):
        return WeatherIcon.SNOWFALL
    if code >= 95:
        return WeatherIcon.THUNDERSTORM
    return WeatherIcon.CLOUDY


@register_provider("weather")
class WeatherProvider(HttpProvider):
    """
    Current temperature, condition and today's min/max in °C

    Coordinates come from options, or from the aggregator's LOCATION
    field; until a location is known the poll fails transiently.
    """

    field = FieldID.WEATHER

    def __init__(self, config, aggregator=None, **context):
        super().__init__(config, **context)
        self.aggregator = aggregator

    def _coordinates(self) -> Optional[Tuple[float, float, str]]:
        if "latitude" in self.options and "longitude" in self.options:
            return float(self.options["latitude"]), float(self.options["longitude"]), str(self.options.get("city", ""))
        if self.aggregator is None:
            return None
        location = self.aggregator.current().usable(FieldID.LOCATION)
        if location is None:
            return None
        return location.latitude, location.longitude, location.name

    async def fetch(self) -> WeatherReport:
        coords = self._coordinates()
        if coords is None:
            raise TransientProviderError("Location not known yet")
        latitude, longitude, place = coords

        data = await self._get_json(
            self.options.get("url", DEFAULT_URL),
            {
                "latitude": latitude,
                "longitude": longitude,
                "current": "temperature_2m,weather_code,is_day",
                "daily": "temperature_2m_max,temperature_2m_min",
                "timezone": "auto",
                "forecast_days": 1,
            },
        )
        return parse_forecast(data, place)


def parse_forecast(data: dict, place: str = "") -> WeatherReport:
    try:
        current = data["current"]
        daily = data["daily"]
        code = int(current["weather_code"])
        temp = float(current["temperature_2m"])
        high = float(daily["temperature_2m_max"][0])
        low = float(daily["temperature_2m_min"][0])
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise TransientProviderError(f"Malformed forecast: {e}") from e

    is_day = bool(current.get("is_day", 1))
    return WeatherReport(
        condition=WMO_CODES.get(code, "Unknown"),
        icon=wmo_to_icon(code, is_day),
        temp=temp,
        low=low,
        high=high,
        location=place,
    )
