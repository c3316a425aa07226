#!/usr/bin/env python3
# Copyright 2025 msq
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.base import BaseHTTPMiddleware

from vigil_hazards.api import predictions as predictions_api
from vigil_hazards.config import AppConfig
from vigil_hazards.llm.client import build_async_llm_client
from vigil_hazards.logging import clear_trace_id, configure_logging, set_trace_id
from vigil_hazards.predictive.context import ExternalContextAggregator, build_context_aggregator
from vigil_hazards.predictive.engine import PredictiveEngine, build_predictive_engine
from vigil_hazards.reports.repository import InMemoryReportRepository, ReportRepository

logger = structlog.get_logger(__name__)


# ========== Trace-ID中间件：自动注入请求追踪ID ==========
class TraceIDMiddleware(BaseHTTPMiddleware):
    """
    为每个HTTP请求注入trace-id到日志上下文

    支持：
    1. 客户端传入 X-Trace-Id 请求头（复用trace-id）
    2. 自动生成 UUID trace-id（新请求）
    3. 响应头返回 X-Trace-Id（便于客户端日志关联）
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
        set_trace_id(trace_id)

        try:
            response = await call_next(request)
            response.headers["X-Trace-Id"] = trace_id
            return response
        finally:
            # 清理上下文，防止泄漏
            clear_trace_id()


async def startup_event(app: FastAPI, owned: Dict[str, Any]) -> None:
    cfg: AppConfig = app.state.config
    configure_logging(json_logs=cfg.log_json, log_level=cfg.log_level)

    if app.state.context_aggregator is None:
        owned["aggregator"] = build_context_aggregator(cfg)
        app.state.context_aggregator = owned["aggregator"]
    if app.state.predictive_engine is None:
        owned["llm_client"] = build_async_llm_client(cfg)
        app.state.predictive_engine = build_predictive_engine(
            cfg,
            app.state.context_aggregator,
            owned["llm_client"],
        )
    logger.info(
        "api_startup_completed",
        llm_model=cfg.llm_model,
        llm_endpoints=[e.name for e in cfg.llm_endpoints],
        cluster_threshold_meters=cfg.cluster_threshold_meters,
    )


async def shutdown_event(app: FastAPI, owned: Dict[str, Any]) -> None:
    llm_client = owned.pop("llm_client", None)
    if llm_client is not None:
        await llm_client.aclose()
    aggregator = owned.pop("aggregator", None)
    if aggregator is not None:
        await aggregator.aclose()
    logger.info("api_shutdown_services_stopped")


def create_app(
    config: Optional[AppConfig] = None,
    *,
    report_repository: Optional[ReportRepository] = None,
    context_aggregator: Optional[ExternalContextAggregator] = None,
    predictive_engine: Optional[PredictiveEngine] = None,
    instrument: bool = True,
) -> FastAPI:
    """
    组装 FastAPI 应用

    未注入的依赖在启动时按配置创建、关闭时释放；
    注入的依赖由调用方负责生命周期（测试中传入桩对象）。
    """
    cfg = config or AppConfig.load_from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned: Dict[str, Any] = {}
        await startup_event(app, owned)
        try:
            yield
        finally:
            await shutdown_event(app, owned)

    app = FastAPI(title="Vigil Predictive Hazard API", lifespan=lifespan)
    app.state.config = cfg
    app.state.report_repository = report_repository or InMemoryReportRepository()
    app.state.context_aggregator = context_aggregator
    app.state.predictive_engine = predictive_engine

    app.add_middleware(TraceIDMiddleware)
    if instrument:
        # metrics
        Instrumentator().instrument(app).expose(app)
    app.include_router(predictions_api.router)

    @app.get("/healthz")
    async def healthz():
        """健康探针。"""
        return {"status": "ok"}

    return app


app = create_app()
