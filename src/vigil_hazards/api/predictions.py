"""
预测与外部数据 API

功能：
- GET  /predictions/nearby      按中心点和半径筛选上报并生成预测
- POST /predictions/regenerate  指定位置重新生成预测
- POST /external-data           查询单项或全部外部环境数据
- POST /reports                 写入上报（仅当数据源支持写入时可用）

依赖在 main.py 中注入到 app.state：predictive_engine、context_aggregator、report_repository
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from vigil_hazards.config import AppConfig
from vigil_hazards.geo.calculations import filter_within_radius
from vigil_hazards.predictive.context import ExternalContextAggregator
from vigil_hazards.predictive.engine import PredictiveEngine, summarize_predictions
from vigil_hazards.predictive.models import Report
from vigil_hazards.reports.repository import ReportRepository

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["predictions"])

EXTERNAL_DATA_ACTIONS = ("weather", "forecast", "airQuality", "seismic", "disasters", "all")


class RegenerateRequest(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: float = Field(5000.0, gt=0, description="搜索半径（米）")
    country: Optional[str] = None


class ExternalDataRequest(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    country: Optional[str] = None
    action: str = "all"
    days: int = Field(7, ge=1, le=16, description="仅 forecast 使用")


def _engine(request: Request) -> PredictiveEngine:
    return request.app.state.predictive_engine


def _aggregator(request: Request) -> ExternalContextAggregator:
    return request.app.state.context_aggregator


def _repository(request: Request) -> ReportRepository:
    return request.app.state.report_repository


def _config(request: Request) -> AppConfig:
    return request.app.state.config


def _validate_coordinates(lat: Optional[float], lng: Optional[float]) -> tuple[float, float]:
    if lat is None or lng is None or math.isnan(lat) or math.isnan(lng):
        raise HTTPException(status_code=400, detail="Invalid coordinates")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise HTTPException(status_code=400, detail="Invalid coordinates")
    return lat, lng


async def _predict_area(
    request: Request,
    lat: float,
    lng: float,
    radius: float,
    country: Optional[str],
) -> Dict[str, Any]:
    reports = await _repository(request).list_reports()
    nearby: List[Report] = [
        report
        for report, _distance in filter_within_radius(
            reports,
            (lat, lng),
            radius,
            position=lambda r: (r.latitude, r.longitude),
        )
    ]
    metadata: Dict[str, Any] = {
        "reportCount": len(nearby),
        "searchRadius": radius,
        "center": {"lat": lat, "lng": lng},
    }
    if not nearby:
        logger.info("predictions_area_empty", lat=lat, lng=lng, radius=radius)
        metadata["predictionCount"] = 0
        metadata["message"] = "No reports in this area for predictions"
        return {
            "predictions": [],
            "summary": summarize_predictions([]).model_dump(by_alias=True),
            "metadata": metadata,
        }

    try:
        predictions = await _engine(request).generate_predictions(nearby, country)
    except Exception as exc:  # noqa: BLE001
        logger.exception("predictions_generation_failed", lat=lat, lng=lng)
        raise HTTPException(status_code=500, detail=f"Failed to generate predictions: {exc}") from exc

    metadata["predictionCount"] = len(predictions)
    metadata["generatedAt"] = datetime.now(timezone.utc).isoformat()
    return {
        "predictions": [p.model_dump(mode="json", by_alias=True) for p in predictions],
        "summary": summarize_predictions(predictions).model_dump(by_alias=True),
        "metadata": metadata,
    }


@router.get("/predictions/nearby")
async def predictions_nearby(
    request: Request,
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, gt=0, description="搜索半径（米）"),
    country: Optional[str] = Query(None),
) -> Dict[str, Any]:
    config = _config(request)
    lat, lng = _validate_coordinates(
        config.default_center_lat if lat is None else lat,
        config.default_center_lng if lng is None else lng,
    )
    search_radius = config.default_search_radius_meters if radius is None else radius
    return await _predict_area(request, lat, lng, search_radius, country or None)


@router.post("/predictions/regenerate")
async def predictions_regenerate(request: Request, body: RegenerateRequest) -> Dict[str, Any]:
    if body.lat is None or body.lng is None:
        raise HTTPException(status_code=400, detail="Location (lat, lng) is required")
    lat, lng = _validate_coordinates(body.lat, body.lng)
    return await _predict_area(request, lat, lng, body.radius, body.country or None)


@router.post("/external-data")
async def external_data(request: Request, body: ExternalDataRequest) -> Dict[str, Any]:
    lat, lng = _validate_coordinates(body.lat, body.lng)
    if body.action not in EXTERNAL_DATA_ACTIONS:
        raise HTTPException(status_code=400, detail="Unknown action")

    aggregator = _aggregator(request)
    country = body.country or None
    if body.action == "weather":
        data: Any = (await aggregator.weather(lat, lng)).model_dump(by_alias=True)
    elif body.action == "forecast":
        data = [day.model_dump(by_alias=True) for day in await aggregator.forecast(lat, lng, body.days)]
    elif body.action == "airQuality":
        data = (await aggregator.air_quality(lat, lng)).model_dump(by_alias=True)
    elif body.action == "seismic":
        data = (await aggregator.seismic_risk(lat, lng)).model_dump(mode="json", by_alias=True)
    elif body.action == "disasters":
        data = (await aggregator.disasters(country)).model_dump(by_alias=True) if country else None
    else:
        context = await aggregator.fetch_context(lat, lng, country)
        data = context.model_dump(mode="json", by_alias=True)
    return {"data": data}


@router.post("/reports", status_code=201)
async def create_report(request: Request, report: Report) -> Dict[str, Any]:
    repository = _repository(request)
    add_report = getattr(repository, "add_report", None)
    if add_report is None:
        raise HTTPException(status_code=405, detail="report source is read-only")
    stored = await add_report(report)
    return {"report": stored.model_dump(mode="json")}
