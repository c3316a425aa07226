"""预测引擎数据模型（强类型，在模块边界一次性校验）。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vigil_hazards.external.models import (
    AirQualitySnapshot,
    CamelModel,
    DisasterSummary,
    SeismicRisk,
    WeatherSnapshot,
)

HazardType = Literal[
    "flood",
    "fire",
    "traffic",
    "environmental",
    "electrical",
    "medical",
    "earthquake",
    "hazmat",
]
UrgencyLevel = Literal["low", "medium", "high", "critical"]

# 坐标偏移上限（度），约 11km；提示词要求 ±0.01~±0.05
MAX_COORDINATE_OFFSET = 0.1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============ 输入：灾害上报 ============


class Report(BaseModel):
    """社区灾害上报（只读输入，调用方负责过滤缺少坐标的记录）。"""

    model_config = ConfigDict(frozen=True)

    id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    category: str
    tags: List[str] = Field(default_factory=list)
    severity_level: int = Field(..., ge=1, le=5)
    timestamp: datetime
    description: str = ""
    ai_summary: Optional[str] = None
    credibility_score: float = Field(0.7, ge=0, le=1)
    status: str = "active"


class ExternalContext(CamelModel):
    """一次预测调用共享的外部数据快照；任一子对象缺失时使用保守默认值，从不为 None。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    weather: WeatherSnapshot = Field(default_factory=WeatherSnapshot)
    air_quality: AirQualitySnapshot = Field(default_factory=AirQualitySnapshot)
    seismic_risk: SeismicRisk = Field(default_factory=SeismicRisk)
    disasters: DisasterSummary = Field(default_factory=DisasterSummary)
    fetched_at: datetime = Field(default_factory=_utcnow)


# ============ 模型输出（校验前） ============


class PredictionCandidate(BaseModel):
    type: HazardType
    description: str = Field(..., max_length=150)
    confidence: float = Field(..., ge=30, le=100)
    radius_meters: float = Field(..., ge=100, le=5000)
    expires_hours: float = Field(..., ge=1, le=24)
    reasoning: str = Field(..., max_length=300)
    weather_influence: str = Field(..., max_length=150)
    urgency_level: UrgencyLevel
    external_data_used: Optional[str] = Field(None, max_length=200)
    lat_offset: float = Field(0.0, ge=-MAX_COORDINATE_OFFSET, le=MAX_COORDINATE_OFFSET)
    lng_offset: float = Field(0.0, ge=-MAX_COORDINATE_OFFSET, le=MAX_COORDINATE_OFFSET)


class PredictionBatch(BaseModel):
    """结构化生成调用的顶层schema。"""

    predictions: List[PredictionCandidate] = Field(default_factory=list)


# ============ 输出：物化后的预测 ============


class AffectedArea(BaseModel):
    lat: float
    lng: float
    radius: float


class Prediction(BaseModel):
    id: str
    type: HazardType
    description: str
    confidence: float = Field(..., gt=0, le=95)
    affected_area: AffectedArea
    expires_at: datetime
    source_reports: List[str]
    cluster_size: int = Field(..., ge=1)
    reasoning: str
    weather_influence: str
    urgency_level: UrgencyLevel
    external_context: ExternalContext

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """过期仅供参考，是否过滤由调用方决定。"""
        return (now or _utcnow()) >= self.expires_at


class PredictionSummary(CamelModel):
    total_predictions: int = 0
    high_confidence: int = 0
    critical_urgency: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
