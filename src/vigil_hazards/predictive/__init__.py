"""预测引擎：外部环境聚合、空间聚类、聚类预测转换与编排。"""

from .clustering import cluster_reports
from .context import ExternalContextAggregator, build_context_aggregator
from .engine import PredictiveEngine, build_predictive_engine, summarize_predictions
from .models import ExternalContext, Prediction, PredictionCandidate, PredictionSummary, Report
from .translator import ClusterTranslator

__all__ = [
    "ClusterTranslator",
    "ExternalContext",
    "ExternalContextAggregator",
    "Prediction",
    "PredictionCandidate",
    "PredictionSummary",
    "PredictiveEngine",
    "Report",
    "build_context_aggregator",
    "build_predictive_engine",
    "cluster_reports",
    "summarize_predictions",
]
