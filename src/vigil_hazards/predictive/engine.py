# Copyright 2025 msq
"""
预测编排器

generate_predictions：上报中心 -> 一次性获取外部环境 -> 聚类 -> 各聚类并发转换 -> 拼接
summarize_predictions：按类型/紧急度/置信区间统计，纯函数
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import TYPE_CHECKING, Iterable, List, Optional, Protocol, Sequence

import structlog

from vigil_hazards.geo.calculations import centroid
from vigil_hazards.llm.structured import StructuredGenerator
from vigil_hazards.predictive.clustering import DEFAULT_CLUSTER_THRESHOLD_METERS, cluster_reports
from vigil_hazards.predictive.context import ExternalContextAggregator
from vigil_hazards.predictive.models import ExternalContext, Prediction, PredictionSummary, Report
from vigil_hazards.predictive.translator import ClusterTranslator

if TYPE_CHECKING:
    from vigil_hazards.config import AppConfig
    from vigil_hazards.llm.client import AsyncLLMClientProtocol

logger = structlog.get_logger(__name__)

HIGH_CONFIDENCE_THRESHOLD = 70.0


class ContextSource(Protocol):
    async def fetch_context(self, lat: float, lng: float, country: Optional[str] = None) -> ExternalContext: ...


class Translator(Protocol):
    async def translate(self, cluster: Sequence[Report], context: ExternalContext) -> List[Prediction]: ...


class PredictiveEngine:
    def __init__(
        self,
        aggregator: ContextSource,
        translator: Translator,
        *,
        cluster_threshold_meters: float = DEFAULT_CLUSTER_THRESHOLD_METERS,
    ) -> None:
        self._aggregator = aggregator
        self._translator = translator
        self._threshold = cluster_threshold_meters

    async def generate_predictions(
        self,
        reports: Sequence[Report],
        country: Optional[str] = None,
    ) -> List[Prediction]:
        if not reports:
            return []

        center_lat, center_lng = centroid([(r.latitude, r.longitude) for r in reports])
        # 外部环境在任何聚类转换开始前完整获取，所有聚类共享同一快照
        context = await self._aggregator.fetch_context(center_lat, center_lng, country)

        clusters = cluster_reports(reports, self._threshold)
        results = await asyncio.gather(
            *(self._translator.translate(cluster, context) for cluster in clusters)
        )
        predictions = [prediction for batch in results for prediction in batch]

        logger.info(
            "predictions_generated",
            report_count=len(reports),
            cluster_count=len(clusters),
            prediction_count=len(predictions),
            country=country,
        )
        return predictions


def summarize_predictions(predictions: Iterable[Prediction]) -> PredictionSummary:
    items = list(predictions)
    return PredictionSummary(
        total_predictions=len(items),
        high_confidence=sum(1 for p in items if p.confidence >= HIGH_CONFIDENCE_THRESHOLD),
        critical_urgency=sum(1 for p in items if p.urgency_level == "critical"),
        by_type=dict(Counter(p.type for p in items)),
    )


def generation_timeout_seconds(config: "AppConfig") -> float:
    """单次结构化生成的总时限：覆盖整条端点切换链，每个端点各占一个请求超时。"""
    return config.llm_request_timeout_seconds * max(1, len(config.llm_endpoints))


def build_predictive_engine(
    config: "AppConfig",
    aggregator: ExternalContextAggregator,
    llm_client: "AsyncLLMClientProtocol",
) -> PredictiveEngine:
    """按配置组装引擎；外部数据客户端和 LLM 客户端由调用方持有并负责关闭。"""
    generator = StructuredGenerator(
        llm_client,
        model=config.llm_model,
        timeout_seconds=generation_timeout_seconds(config),
        max_attempts=config.prediction_max_attempts,
        backoff_seconds=config.prediction_retry_backoff_seconds,
    )
    translator = ClusterTranslator(generator, temperature=config.prediction_temperature)
    return PredictiveEngine(
        aggregator,
        translator,
        cluster_threshold_meters=config.cluster_threshold_meters,
    )
