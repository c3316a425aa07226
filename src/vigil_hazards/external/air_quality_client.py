"""WAQI 空气质量客户端；0-500 的 AQI 换算为 1-5 等级。"""

from __future__ import annotations

import math
from typing import Any, Dict

from vigil_hazards.external.base import BaseProviderClient, ProviderError
from vigil_hazards.external.models import AirQualitySnapshot

AQI_INTERPRETATION: Dict[int, str] = {
    1: "Good",
    2: "Moderate",
    3: "Unhealthy for Sensitive Groups",
    4: "Unhealthy",
    5: "Hazardous",
}

# 缺失污染物读数时使用的取值
_POLLUTANT_DEFAULTS: Dict[str, float] = {
    "pm25": 15.0,
    "pm10": 30.0,
    "no2": 0.0,
    "o3": 0.0,
    "so2": 0.0,
    "co": 0.0,
}


class AirQualityProviderError(ProviderError):
    provider = "air_quality"


def interpret_aqi(level: int) -> str:
    return AQI_INTERPRETATION.get(level, "Unknown")


def scale_waqi(raw_aqi: Any) -> int:
    """WAQI 指数（0-500，可能为 "-"）换算为 1-5 等级。"""
    try:
        value = float(raw_aqi)
    except (TypeError, ValueError):
        value = 50.0
    if not math.isfinite(value):
        value = 50.0
    return max(1, min(5, math.ceil(value / 500 * 5)))


def _reading(iaqi: Dict[str, Any], key: str) -> float:
    entry = iaqi.get(key)
    if isinstance(entry, dict):
        try:
            return float(entry["v"])
        except (KeyError, TypeError, ValueError):
            pass
    return _POLLUTANT_DEFAULTS[key]


class AirQualityClient(BaseProviderClient):
    error_cls = AirQualityProviderError

    def __init__(self, *, token: str = "demo", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._token = token

    async def current(self, lat: float, lng: float) -> AirQualitySnapshot:
        data = await self._get_json(f"/feed/geo:{lat};{lng}/", {"token": self._token})
        if not isinstance(data, dict) or data.get("status") != "ok" or not isinstance(data.get("data"), dict):
            info = data.get("data") if isinstance(data, dict) else None
            raise AirQualityProviderError("air quality station unavailable", info=str(info))

        payload = data["data"]
        iaqi = payload.get("iaqi") if isinstance(payload.get("iaqi"), dict) else {}
        return AirQualitySnapshot(
            aqi=scale_waqi(payload.get("aqi")),
            **{key: _reading(iaqi, key) for key in _POLLUTANT_DEFAULTS},
        )
