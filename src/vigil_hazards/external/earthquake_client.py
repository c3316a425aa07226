"""USGS 地震数据客户端：附近地震事件与地震活跃度评估。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List

import structlog

from vigil_hazards.external.base import BaseProviderClient, ProviderError
from vigil_hazards.external.models import EarthquakeEvent, SeismicityLevel, SeismicRisk
from vigil_hazards.geo.calculations import haversine_meters

logger = structlog.get_logger(__name__)

RECENT_EVENT_LIMIT = 5


class SeismicProviderError(ProviderError):
    provider = "seismic"


def classify_seismicity(event_count: int, average_magnitude: float) -> SeismicityLevel:
    if event_count > 10 or average_magnitude > 6:
        return "very_high"
    if event_count > 5 or average_magnitude > 5:
        return "high"
    if event_count > 2 or average_magnitude > 4:
        return "moderate"
    return "low"


def interpret_magnitude(magnitude: float) -> str:
    if magnitude < 3:
        return "Minor - Usually not felt"
    if magnitude < 4:
        return "Light - Rarely causes damage"
    if magnitude < 5:
        return "Moderate - Can cause localized damage"
    if magnitude < 6:
        return "Strong - Significant damage likely"
    if magnitude < 7:
        return "Major - Widespread damage"
    return "Great - Severe damage widespread"


def _parse_feature(feature: Any, lat: float, lng: float) -> EarthquakeEvent | None:
    try:
        props = feature["properties"]
        coords = feature["geometry"]["coordinates"]
        if not isinstance(props, dict):
            return None
        magnitude = props.get("mag")
        if magnitude is None:
            return None
        event_lng, event_lat = float(coords[0]), float(coords[1])
        return EarthquakeEvent(
            id=str(feature.get("id", "")),
            magnitude=float(magnitude),
            depth_km=float(coords[2]) if len(coords) > 2 and coords[2] is not None else 0.0,
            latitude=event_lat,
            longitude=event_lng,
            timestamp=datetime.fromtimestamp(int(props["time"]) / 1000, tz=timezone.utc),
            location=props.get("place") or "",
            distance_meters=haversine_meters(lat, lng, event_lat, event_lng),
            url=props.get("url") or "",
        )
    except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
        logger.debug("earthquake_feature_skipped", error=str(exc))
        return None


class EarthquakeClient(BaseProviderClient):
    error_cls = SeismicProviderError

    def __init__(self, *, feed_url: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._feed_url = feed_url

    async def nearby(
        self,
        lat: float,
        lng: float,
        radius_meters: float,
        min_magnitude: float = 2.5,
    ) -> List[EarthquakeEvent]:
        """半径内、震级不低于 min_magnitude 的事件，按震级降序。"""
        data = await self._get_json(self._feed_url)
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            raise SeismicProviderError("earthquake feed missing features")

        events: List[EarthquakeEvent] = []
        for feature in features:
            event = _parse_feature(feature, lat, lng)
            if event is None or event.magnitude < min_magnitude:
                continue
            if event.distance_meters is not None and event.distance_meters <= radius_meters:
                events.append(event)
        events.sort(key=lambda e: e.magnitude, reverse=True)
        return events

    async def seismic_risk(self, lat: float, lng: float, radius_meters: float) -> SeismicRisk:
        events = await self.nearby(lat, lng, radius_meters)
        if not events:
            return SeismicRisk()

        average = sum(e.magnitude for e in events) / len(events)
        return SeismicRisk(
            seismicity_level=classify_seismicity(len(events), average),
            event_count=len(events),
            average_magnitude=round(average, 1),
            recent_events=events[:RECENT_EVENT_LIMIT],
        )
