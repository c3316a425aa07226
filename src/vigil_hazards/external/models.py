"""外部数据源的规范化结构；所有字段都有保守默认值。"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SeismicityLevel = Literal["low", "moderate", "high", "very_high"]


class CamelModel(BaseModel):
    """Python 侧 snake_case，序列化为 camelCase。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WeatherSnapshot(CamelModel):
    temperature: float = 20.0
    humidity: float = 60.0
    precipitation: float = 0.0
    wind_speed: float = 5.0
    wind_gusts: Optional[float] = None
    conditions: str = "clear"
    pressure: float = 1013.0
    cloud_cover: Optional[float] = 0.0


class DailyForecast(CamelModel):
    date: str
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None
    humidity: Optional[float] = None
    conditions: str = "unknown"


class AirQualitySnapshot(CamelModel):
    aqi: int = Field(2, ge=1, le=5)
    pm25: float = 15.0
    pm10: float = 30.0
    no2: float = 0.0
    o3: float = 0.0
    so2: float = 0.0
    co: float = 0.0


class EarthquakeEvent(CamelModel):
    id: str
    magnitude: float
    depth_km: float = 0.0
    latitude: float
    longitude: float
    timestamp: datetime
    location: str = ""
    distance_meters: Optional[float] = None
    url: str = ""


class SeismicRisk(CamelModel):
    seismicity_level: SeismicityLevel = "low"
    event_count: int = Field(0, ge=0)
    average_magnitude: float = 0.0
    recent_events: List[EarthquakeEvent] = Field(default_factory=list)


class DisasterEvent(CamelModel):
    id: str
    title: str
    type: str
    status: str = ""
    date: Optional[str] = None
    country: str = ""
    url: str = ""
    source: str = "ReliefWeb"


class DisasterSummary(CamelModel):
    events: List[DisasterEvent] = Field(default_factory=list)
    nearby_events: List[DisasterEvent] = Field(default_factory=list)
    event_types: Dict[str, int] = Field(default_factory=dict)

