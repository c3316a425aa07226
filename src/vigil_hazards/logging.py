"""
统一日志模块

提供全局structlog配置，包括：
- 统一processor链（时间戳、堆栈、trace-id注入）
- JSON/控制台双渲染模式
- Prometheus指标集中注册（日志计数、预测生成、外部数据降级）
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from prometheus_client import Counter, Histogram

# ========== ContextVar：跨异步边界的trace-id传递 ==========
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


# ========== Prometheus指标集中注册 ==========
log_count_metric = Counter(
    "vigil_log_total",
    "日志总数（按级别和模块分类）",
    ["level", "module"],
)

predictions_generated_metric = Counter(
    "vigil_predictions_generated_total",
    "生成的预测数量（按灾害类型）",
    ["hazard_type"],
)

cluster_failures_metric = Counter(
    "vigil_cluster_translation_failures_total",
    "聚类预测失败次数（按失败原因）",
    ["reason"],
)

provider_fallback_metric = Counter(
    "vigil_external_provider_fallback_total",
    "外部数据源失败后使用默认值的次数",
    ["provider"],
)

generation_latency_metric = Histogram(
    "vigil_generation_latency_seconds",
    "结构化生成调用耗时（秒）",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0),
)


# ========== 自定义Processor ==========
def add_trace_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """从ContextVar中提取trace-id并注入到日志上下文。"""
    trace_id = trace_id_var.get()
    if trace_id:
        event_dict["trace_id"] = trace_id
    return event_dict


def add_prometheus_metrics(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    level = event_dict.get("level", "info")
    module = event_dict.get("logger", "unknown")
    log_count_metric.labels(level=level, module=module).inc()
    return event_dict


# ========== 全局配置函数 ==========
def configure_logging(
    *,
    json_logs: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    配置全局structlog

    Args:
        json_logs: 是否输出JSON格式（生产环境推荐True）
        log_level: 日志级别（DEBUG/INFO/WARNING/ERROR）

    之后所有模块直接使用：
        logger = structlog.get_logger(__name__)
        logger.info("prediction_generated", cluster_size=3)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    processors: list[Any] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_trace_id,
        add_prometheus_metrics,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ========== 便捷函数：trace-id管理 ==========
def set_trace_id(trace_id: str) -> None:
    """设置当前协程的trace-id（API 中间件在每个请求开始时调用）"""
    trace_id_var.set(trace_id)


def clear_trace_id() -> None:
    """清除当前协程的trace-id（防止上下文泄漏）"""
    trace_id_var.set(None)


def get_trace_id() -> str | None:
    return trace_id_var.get()
