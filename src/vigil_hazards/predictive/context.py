"""
外部环境数据聚合

功能：给定中心坐标（及可选国家），并发获取天气、空气质量、地震活跃度、灾害事件
约束：
- 四路请求并发执行，总耗时约等于最慢一路
- 每路独立超时；失败或超时即替换为该路的保守默认值，聚合调用本身从不抛异常
- 不缓存、不重试（重试属于各数据源适配器自身的策略）
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, List, Mapping, Optional, Protocol, TypeVar

import structlog

from vigil_hazards.external import AirQualityClient, DisasterClient, EarthquakeClient, WeatherClient
from vigil_hazards.external.models import (
    AirQualitySnapshot,
    DailyForecast,
    DisasterSummary,
    SeismicRisk,
    WeatherSnapshot,
)
from vigil_hazards.logging import provider_fallback_metric
from vigil_hazards.predictive.models import ExternalContext

if TYPE_CHECKING:
    from vigil_hazards.config import AppConfig

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_SEISMIC_RADIUS_METERS = 150_000.0


class WeatherSource(Protocol):
    async def current(self, lat: float, lng: float) -> WeatherSnapshot: ...

    async def forecast(self, lat: float, lng: float, days: int = 7) -> List[DailyForecast]: ...


class AirQualitySource(Protocol):
    async def current(self, lat: float, lng: float) -> AirQualitySnapshot: ...


class SeismicSource(Protocol):
    async def seismic_risk(self, lat: float, lng: float, radius_meters: float) -> SeismicRisk: ...


class DisasterSource(Protocol):
    async def nearby(self, country: str, limit: int = 15) -> DisasterSummary: ...


class ExternalContextAggregator:
    def __init__(
        self,
        *,
        weather: WeatherSource,
        air_quality: AirQualitySource,
        seismic: SeismicSource,
        disasters: DisasterSource,
        seismic_radius_meters: float = DEFAULT_SEISMIC_RADIUS_METERS,
        timeout_seconds: float = 5.0,
        timeouts: Optional[Mapping[str, float]] = None,
    ) -> None:
        self._weather = weather
        self._air_quality = air_quality
        self._seismic = seismic
        self._disasters = disasters
        self._seismic_radius = seismic_radius_meters
        self._default_timeout = timeout_seconds
        self._timeouts = dict(timeouts or {})

    async def fetch_context(
        self,
        lat: float,
        lng: float,
        country: Optional[str] = None,
    ) -> ExternalContext:
        weather, air_quality, seismic_risk, disasters = await asyncio.gather(
            self.weather(lat, lng),
            self.air_quality(lat, lng),
            self.seismic_risk(lat, lng),
            self.disasters(country),
        )
        context = ExternalContext(
            weather=weather,
            air_quality=air_quality,
            seismic_risk=seismic_risk,
            disasters=disasters,
        )
        logger.info(
            "external_context_fetched",
            lat=round(lat, 5),
            lng=round(lng, 5),
            country=country,
            conditions=weather.conditions,
            aqi=air_quality.aqi,
            seismicity_level=seismic_risk.seismicity_level,
            disaster_events=len(disasters.nearby_events),
        )
        return context

    async def weather(self, lat: float, lng: float) -> WeatherSnapshot:
        return await self._guarded("weather", lambda: self._weather.current(lat, lng), WeatherSnapshot)

    async def forecast(self, lat: float, lng: float, days: int = 7) -> List[DailyForecast]:
        return await self._guarded("forecast", lambda: self._weather.forecast(lat, lng, days), list)

    async def air_quality(self, lat: float, lng: float) -> AirQualitySnapshot:
        return await self._guarded("air_quality", lambda: self._air_quality.current(lat, lng), AirQualitySnapshot)

    async def seismic_risk(self, lat: float, lng: float) -> SeismicRisk:
        return await self._guarded(
            "seismic",
            lambda: self._seismic.seismic_risk(lat, lng, self._seismic_radius),
            SeismicRisk,
        )

    async def disasters(self, country: Optional[str]) -> DisasterSummary:
        # 未提供国家时不查询灾害事件
        if not country:
            return DisasterSummary()
        return await self._guarded("disasters", lambda: self._disasters.nearby(country), DisasterSummary)

    async def _guarded(
        self,
        provider: str,
        call: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> T:
        timeout = self._timeouts.get(provider, self._default_timeout)
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("external_provider_timeout", provider=provider, timeout_seconds=timeout)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "external_provider_failed",
                provider=provider,
                error_type=type(exc).__name__,
                error=str(exc)[:300],
            )
        provider_fallback_metric.labels(provider=provider).inc()
        return fallback()

    async def aclose(self) -> None:
        """关闭各数据源自建的 HTTP 客户端。"""
        for source in (self._weather, self._air_quality, self._seismic, self._disasters):
            close = getattr(source, "close", None)
            if close is not None:
                await close()


def build_context_aggregator(config: "AppConfig") -> ExternalContextAggregator:
    timeout = config.provider_timeout_seconds
    return ExternalContextAggregator(
        weather=WeatherClient(base_url=config.weather_base_url, timeout=timeout),
        air_quality=AirQualityClient(
            base_url=config.air_quality_base_url,
            token=config.air_quality_token,
            timeout=timeout,
        ),
        seismic=EarthquakeClient(feed_url=config.earthquake_feed_url, timeout=timeout),
        disasters=DisasterClient(
            base_url=config.disaster_base_url,
            appname=config.disaster_appname,
            timeout=timeout,
        ),
        seismic_radius_meters=config.seismic_radius_meters,
        timeout_seconds=timeout,
    )
