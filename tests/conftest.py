from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, os.fspath(ROOT / "src"))

from vigil_hazards.predictive.models import Report  # noqa: E402


# 配置pytest-anyio只使用asyncio后端（避免trio依赖）
@pytest.fixture(scope="session")
def anyio_backend():
    """配置pytest-anyio只使用asyncio后端"""
    return "asyncio"


@pytest.fixture
def make_report() -> Callable[..., Report]:
    """构造上报的工厂，未指定字段使用固定值。"""

    def factory(report_id: str, lat: float, lng: float, **overrides: Any) -> Report:
        fields: dict[str, Any] = {
            "id": report_id,
            "latitude": lat,
            "longitude": lng,
            "category": "flood",
            "tags": ["water", "drainage"],
            "severity_level": 3,
            "timestamp": datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc),
            "description": "Street flooding near the market",
        }
        fields.update(overrides)
        return Report(**fields)

    return factory
