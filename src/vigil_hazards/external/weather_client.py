"""Open-Meteo 天气客户端（无需 API key）：当前天气与逐日预报。"""

from __future__ import annotations

from typing import Any, Dict, List

from vigil_hazards.external.base import BaseProviderClient, ProviderError
from vigil_hazards.external.models import DailyForecast, WeatherSnapshot

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,precipitation,weather_code,"
    "wind_speed_10m,wind_gusts_10m,pressure_msl,cloud_cover"
)
DAILY_FIELDS = (
    "weather_code,temperature_2m_max,temperature_2m_min,precipitation_sum,"
    "wind_speed_10m_max,relative_humidity_2m_max"
)

# WMO 天气代码
WEATHER_CODES: Dict[int, str] = {
    0: "clear",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "foggy",
    48: "foggy",
    51: "light drizzle",
    53: "moderate drizzle",
    55: "dense drizzle",
    61: "slight rain",
    63: "moderate rain",
    65: "heavy rain",
    71: "slight snow",
    73: "moderate snow",
    75: "heavy snow",
    77: "snow grains",
    80: "slight rain showers",
    81: "moderate rain showers",
    82: "violent rain showers",
    85: "slight snow showers",
    86: "heavy snow showers",
    95: "thunderstorm",
    96: "thunderstorm with hail",
    99: "thunderstorm with large hail",
}


class WeatherProviderError(ProviderError):
    provider = "weather"


def interpret_weather_code(code: Any) -> str:
    try:
        return WEATHER_CODES.get(int(code), "unknown")
    except (TypeError, ValueError):
        return "unknown"


class WeatherClient(BaseProviderClient):
    error_cls = WeatherProviderError

    async def current(self, lat: float, lng: float) -> WeatherSnapshot:
        params = {
            "latitude": lat,
            "longitude": lng,
            "current": CURRENT_FIELDS,
            "timezone": "auto",
        }
        data = await self._get_json("/forecast", params)
        current = data.get("current") if isinstance(data, dict) else None
        if not isinstance(current, dict):
            raise WeatherProviderError("weather response missing current block")
        try:
            return WeatherSnapshot(
                temperature=current["temperature_2m"],
                humidity=current["relative_humidity_2m"],
                precipitation=current.get("precipitation") or 0.0,
                wind_speed=current["wind_speed_10m"],
                wind_gusts=current.get("wind_gusts_10m"),
                cloud_cover=current.get("cloud_cover"),
                conditions=interpret_weather_code(current.get("weather_code")),
                pressure=current["pressure_msl"],
            )
        except (KeyError, ValueError) as exc:
            raise WeatherProviderError("weather response malformed", info=str(exc)) from exc

    async def forecast(self, lat: float, lng: float, days: int = 7) -> List[DailyForecast]:
        """逐日预报，用于推断未来灾害趋势。"""
        params = {
            "latitude": lat,
            "longitude": lng,
            "daily": DAILY_FIELDS,
            "forecast_days": max(1, min(days, 16)),
            "timezone": "auto",
        }
        data = await self._get_json("/forecast", params)
        daily = data.get("daily") if isinstance(data, dict) else None
        if not isinstance(daily, dict) or not isinstance(daily.get("time"), list):
            raise WeatherProviderError("forecast response missing daily block")

        def column(name: str, index: int) -> Any:
            values = daily.get(name) or []
            return values[index] if index < len(values) else None

        return [
            DailyForecast(
                date=str(date),
                max_temp=column("temperature_2m_max", idx),
                min_temp=column("temperature_2m_min", idx),
                precipitation=column("precipitation_sum", idx),
                wind_speed=column("wind_speed_10m_max", idx),
                humidity=column("relative_humidity_2m_max", idx),
                conditions=interpret_weather_code(column("weather_code", idx)),
            )
            for idx, date in enumerate(daily["time"])
        ]
