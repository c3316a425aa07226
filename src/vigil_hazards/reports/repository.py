from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Protocol

import structlog

from vigil_hazards.predictive.models import Report

logger = structlog.get_logger(__name__)


class ReportRepository(Protocol):
    """预测接口只依赖读取能力；存储实现由部署方提供。"""

    async def list_reports(self) -> List[Report]: ...


class InMemoryReportRepository:
    """进程内上报存储，用于开发调试与测试；按写入顺序返回。"""

    def __init__(self, reports: Iterable[Report] = ()) -> None:
        self._reports: Dict[str, Report] = {}
        self._lock = asyncio.Lock()
        for report in reports:
            self._reports[report.id] = report

    async def add_report(self, report: Report) -> Report:
        async with self._lock:
            replaced = report.id in self._reports
            self._reports[report.id] = report
        logger.info("report_stored", report_id=report.id, category=report.category, replaced=replaced)
        return report

    async def list_reports(self) -> List[Report]:
        async with self._lock:
            return list(self._reports.values())

    def __len__(self) -> int:
        return len(self._reports)
