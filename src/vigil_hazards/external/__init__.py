"""外部数据源适配器（天气、空气质量、地震、灾害事件）。"""

from .air_quality_client import AirQualityClient, AirQualityProviderError, interpret_aqi
from .base import BaseProviderClient, ProviderError
from .disaster_client import DisasterClient, DisasterProviderError
from .earthquake_client import EarthquakeClient, SeismicProviderError, interpret_magnitude
from .weather_client import WeatherClient, WeatherProviderError

__all__ = [
    "AirQualityClient",
    "AirQualityProviderError",
    "BaseProviderClient",
    "DisasterClient",
    "DisasterProviderError",
    "EarthquakeClient",
    "ProviderError",
    "SeismicProviderError",
    "WeatherClient",
    "WeatherProviderError",
    "interpret_aqi",
    "interpret_magnitude",
]
