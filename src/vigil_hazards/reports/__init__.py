"""灾害上报只读数据源。"""

from .repository import InMemoryReportRepository, ReportRepository

__all__ = ["InMemoryReportRepository", "ReportRepository"]
