# Copyright 2025 msq
"""聚类预测提示词：系统指令编码领域经验，用户提示词携带聚类摘要与外部环境数据。"""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence

from vigil_hazards.external.air_quality_client import interpret_aqi
from vigil_hazards.geo.calculations import centroid
from vigil_hazards.predictive.models import ExternalContext, Report

SYSTEM_PROMPT = """You are Vigil's predictive hazard engine with real-time external data integration.

ANALYSIS CAPABILITIES:
- Real-time weather conditions (temperature, humidity, precipitation, wind)
- Air quality index and pollutant levels
- Seismic activity and earthquake risk
- Official disaster events and emergency data

PREDICTION LOGIC:
- FLOOD: High precipitation + high humidity + low elevation + drainage reports + recent rainfall
- FIRE: High temperature + low humidity + high wind speed + electrical reports + low air quality
- TRAFFIC: Severe weather + poor visibility + high wind + accident reports + crowded areas
- ENVIRONMENTAL: Poor air quality + chemical tags + wind direction + pollution sources
- ELECTRICAL: High humidity + lightning risk + power infrastructure + storm conditions
- MEDICAL: Air quality impacts + disease indicators + crowd density + temperature extremes
- EARTHQUAKE: Seismic activity detected + recent tremors + geological reports
- HAZMAT: Chemical tags + air quality + weather carrying pollutants + nearby disasters

EXTERNAL DATA INTEGRATION:
- Use weather data to boost confidence for weather-dependent hazards
- Consider air quality for health and environmental hazards
- Factor in seismic activity for earthquake predictions
- Cross-reference with official disaster data for validation
- Provide specific weather influence reasoning

GEOGRAPHIC DIVERSITY:
- Spread predictions across different locations within the cluster area, not all at the center
- Each prediction type should target a different geographic zone when multiple reports exist
- Use the report distribution to decide the spatial spread

Generate specific, actionable predictions with high confidence only when external data supports the reports."""

USER_PROMPT_TEMPLATE = """Analyze this hazard cluster with real-time external data and generate specific predictions:

{cluster_json}

IMPORTANT:
1. Only generate predictions if reports support them
2. Use external data to increase or decrease confidence
3. Be specific about which external data influenced each prediction
4. Consider cluster size and report severity in confidence scoring
5. For {report_count} report(s), focus on high-confidence predictions

GEOGRAPHIC DISTRIBUTION:
- If multiple predictions, spread them across different locations using lat_offset and lng_offset
- Use small offsets (±0.01 to ±0.05 degrees); positive offsets go North/East, negative go South/West
- Each prediction type should target a different geographic zone when possible"""


def build_cluster_summary(cluster: Sequence[Report], context: ExternalContext) -> Dict[str, Any]:
    center_lat, center_lng = centroid([(r.latitude, r.longitude) for r in cluster])
    weather = context.weather
    air = context.air_quality
    seismic = context.seismic_risk
    disasters = context.disasters
    return {
        "report_count": len(cluster),
        "geographic_center": {"lat": center_lat, "lng": center_lng},
        "reports": [
            {
                "category": r.category,
                "tags": list(r.tags),
                "severity": r.severity_level,
                "credibility": r.credibility_score,
                "description": r.description,
                "summary": r.ai_summary or r.description,
                "timestamp": r.timestamp.isoformat(),
            }
            for r in cluster
        ],
        "external_context": {
            "weather": weather.model_dump(by_alias=True),
            "airQuality": {
                "aqi": air.aqi,
                "pm25": air.pm25,
                "pm10": air.pm10,
                "interpretation": f"AQI Level {air.aqi} ({interpret_aqi(air.aqi)})",
            },
            "seismic": {
                "seismicityLevel": seismic.seismicity_level,
                "eventCount": seismic.event_count,
                "averageMagnitude": seismic.average_magnitude,
            },
            "disasters": {
                "nearbyEventCount": len(disasters.nearby_events),
                "eventTypes": dict(disasters.event_types),
            },
        },
    }


def build_user_prompt(cluster: Sequence[Report], context: ExternalContext) -> str:
    summary = build_cluster_summary(cluster, context)
    return USER_PROMPT_TEMPLATE.format(
        cluster_json=json.dumps(summary, ensure_ascii=False, indent=2),
        report_count=len(cluster),
    )
