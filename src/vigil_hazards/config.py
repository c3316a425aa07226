from __future__ import annotations

import json
import os
from dataclasses import dataclass

import structlog

from vigil_hazards.llm.endpoint_manager import LLMEndpointConfig

_logger = structlog.get_logger(__name__)

DEFAULT_LLM_BASE_URL = "https://api.mistral.ai/v1"
DEFAULT_LLM_MODEL = "mistral-small-2503"
DEFAULT_EARTHQUAKE_FEED_URL = (
    "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_week.geojson"
)

try:
    # 说明：从 config/ 目录加载环境文件；不存在时忽略，已有环境变量优先
    from dotenv import load_dotenv

    base_dir: str = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
    config_dir: str = os.path.join(base_dir, "config")

    load_dotenv(os.path.join(config_dir, ".env"), override=False)
    # 开发者本地覆盖层（可选）
    load_dotenv(os.path.join(config_dir, "dev.local.env"), override=False)
except Exception as exc:
    _logger.warning("dotenv_load_skipped", error=str(exc))


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("config_value_invalid", key=name, raw=raw, fallback=default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        _logger.warning("config_value_invalid", key=name, raw=raw, fallback=default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_endpoints(raw: str | None, fallback_key: str) -> list[LLMEndpointConfig]:
    """解析 LLM_ENDPOINTS（JSON 数组），无效条目直接跳过。"""
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        _logger.warning("llm_endpoints_parse_failed", raw=raw)
        return []
    if not isinstance(items, list):
        return []
    endpoints: list[LLMEndpointConfig] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        base_url = str(item.get("base_url") or "")
        if not base_url:
            continue
        endpoints.append(
            LLMEndpointConfig(
                name=str(item.get("name") or f"endpoint-{idx}"),
                base_url=base_url,
                api_key=str(item.get("api_key") or fallback_key),
                priority=int(item.get("priority", 100)),
            )
        )
    return endpoints


@dataclass(frozen=True)
class AppConfig:
    llm_base_url: str
    llm_api_key: str
    llm_model: str
    llm_endpoints: tuple[LLMEndpointConfig, ...]
    llm_failure_threshold: int
    llm_recovery_seconds: int
    llm_max_concurrency: int
    llm_request_timeout_seconds: float
    prediction_temperature: float
    prediction_max_attempts: int
    prediction_retry_backoff_seconds: float
    cluster_threshold_meters: float
    weather_base_url: str
    air_quality_base_url: str
    air_quality_token: str
    earthquake_feed_url: str
    disaster_base_url: str
    disaster_appname: str
    seismic_radius_meters: float
    provider_timeout_seconds: float
    default_center_lat: float
    default_center_lng: float
    default_search_radius_meters: float
    log_json: bool
    log_level: str

    @staticmethod
    def load_from_env() -> "AppConfig":
        llm_base_url = os.getenv("LLM_BASE_URL", DEFAULT_LLM_BASE_URL)
        llm_api_key = (
            os.getenv("LLM_API_KEY")
            or os.getenv("MISTRAL_API_KEY")
            or os.getenv("OPENAI_API_KEY")
            or "dummy"
        )

        endpoints = _parse_endpoints(os.getenv("LLM_ENDPOINTS"), llm_api_key)
        backup_url = os.getenv("LLM_BACKUP_URL")
        if backup_url:
            endpoints.append(
                LLMEndpointConfig(
                    name=os.getenv("LLM_BACKUP_NAME", "backup"),
                    base_url=backup_url,
                    api_key=os.getenv("LLM_BACKUP_KEY", llm_api_key),
                    priority=_env_int("LLM_BACKUP_PRIORITY", 80),
                )
            )
        if not endpoints:
            endpoints.append(
                LLMEndpointConfig(
                    name="primary",
                    base_url=llm_base_url,
                    api_key=llm_api_key,
                    priority=100,
                )
            )

        return AppConfig(
            llm_base_url=llm_base_url,
            llm_api_key=llm_api_key,
            llm_model=os.getenv("LLM_MODEL", DEFAULT_LLM_MODEL),
            llm_endpoints=tuple(endpoints),
            llm_failure_threshold=_env_int("LLM_FAILURE_THRESHOLD", 3),
            llm_recovery_seconds=_env_int("LLM_RECOVERY_SECONDS", 60),
            llm_max_concurrency=_env_int("LLM_MAX_CONCURRENCY", 5),
            llm_request_timeout_seconds=_env_float("LLM_REQUEST_TIMEOUT_SECONDS", 30.0),
            prediction_temperature=_env_float("PREDICTION_TEMPERATURE", 0.3),
            prediction_max_attempts=max(1, _env_int("PREDICTION_MAX_ATTEMPTS", 1)),
            prediction_retry_backoff_seconds=_env_float("PREDICTION_RETRY_BACKOFF_SECONDS", 0.5),
            cluster_threshold_meters=_env_float("CLUSTER_THRESHOLD_METERS", 500.0),
            weather_base_url=os.getenv("WEATHER_BASE_URL", "https://api.open-meteo.com/v1"),
            air_quality_base_url=os.getenv("AIR_QUALITY_BASE_URL", "https://api.waqi.info"),
            air_quality_token=os.getenv("AIR_QUALITY_TOKEN", "demo"),
            earthquake_feed_url=os.getenv("EARTHQUAKE_FEED_URL", DEFAULT_EARTHQUAKE_FEED_URL),
            disaster_base_url=os.getenv("DISASTER_BASE_URL", "https://api.reliefweb.int/v2"),
            disaster_appname=os.getenv("DISASTER_APPNAME", "vigil"),
            seismic_radius_meters=_env_float("SEISMIC_RADIUS_METERS", 150_000.0),
            provider_timeout_seconds=_env_float("PROVIDER_TIMEOUT_SECONDS", 5.0),
            default_center_lat=_env_float("DEFAULT_CENTER_LAT", 18.009025),
            default_center_lng=_env_float("DEFAULT_CENTER_LNG", -76.777948),
            default_search_radius_meters=_env_float("DEFAULT_SEARCH_RADIUS_METERS", 5000.0),
            log_json=_env_bool("LOG_JSON", False),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
