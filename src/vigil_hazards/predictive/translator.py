# Copyright 2025 msq
"""
聚类 -> 预测转换

流程：聚类摘要 + 外部环境 -> 结构化生成 -> 候选校验 -> 物化为带位置、带时效的预测
约束：
- 置信度硬上限 95
- 位置 = 聚类中心 + 模型给出的经纬度偏移
- 任一异常（网络、超时、schema 不符）只影响当前聚类，返回空列表，不向上抛出
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol, Sequence, Type, TypeVar

import structlog
from pydantic import BaseModel

from vigil_hazards.geo.calculations import centroid
from vigil_hazards.logging import cluster_failures_metric, predictions_generated_metric
from vigil_hazards.predictive.models import (
    AffectedArea,
    ExternalContext,
    Prediction,
    PredictionBatch,
    PredictionCandidate,
    Report,
)
from vigil_hazards.predictive.prompts import SYSTEM_PROMPT, build_user_prompt

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

CONFIDENCE_CAP = 95.0
DEFAULT_TEMPERATURE = 0.3


class StructuredGeneratorProtocol(Protocol):
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Type[T],
        *,
        temperature: float,
    ) -> T: ...


def materialize_candidate(
    candidate: PredictionCandidate,
    cluster: Sequence[Report],
    context: ExternalContext,
    *,
    now: Optional[datetime] = None,
) -> Prediction:
    """单个候选 -> 预测：封顶置信度、叠加偏移、计算绝对过期时间。"""
    generated_at = now or datetime.now(timezone.utc)
    center_lat, center_lng = centroid([(r.latitude, r.longitude) for r in cluster])
    return Prediction(
        id=f"pred_{candidate.type}_{uuid.uuid4().hex[:12]}",
        type=candidate.type,
        description=candidate.description,
        confidence=min(candidate.confidence, CONFIDENCE_CAP),
        affected_area=AffectedArea(
            lat=center_lat + candidate.lat_offset,
            lng=center_lng + candidate.lng_offset,
            radius=candidate.radius_meters,
        ),
        expires_at=generated_at + timedelta(hours=candidate.expires_hours),
        source_reports=[r.id for r in cluster],
        cluster_size=len(cluster),
        reasoning=candidate.reasoning,
        weather_influence=candidate.weather_influence,
        urgency_level=candidate.urgency_level,
        external_context=context,
    )


class ClusterTranslator:
    def __init__(
        self,
        generator: StructuredGeneratorProtocol,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._generator = generator
        self._temperature = temperature

    async def translate(self, cluster: Sequence[Report], context: ExternalContext) -> List[Prediction]:
        if not cluster:
            return []

        report_ids = [r.id for r in cluster]
        try:
            batch = await self._generator.generate(
                SYSTEM_PROMPT,
                build_user_prompt(cluster, context),
                PredictionBatch,
                temperature=self._temperature,
            )
            now = datetime.now(timezone.utc)
            predictions = [materialize_candidate(c, cluster, context, now=now) for c in batch.predictions]
        except Exception as exc:  # noqa: BLE001
            cluster_failures_metric.labels(reason=type(exc).__name__).inc()
            logger.error(
                "prediction_cluster_failed",
                cluster_size=len(cluster),
                source_reports=report_ids,
                error_type=type(exc).__name__,
                error=str(exc)[:300],
            )
            return []

        for prediction in predictions:
            predictions_generated_metric.labels(hazard_type=prediction.type).inc()
        logger.info(
            "prediction_cluster_translated",
            cluster_size=len(cluster),
            prediction_count=len(predictions),
            types=[p.type for p in predictions],
        )
        return predictions
