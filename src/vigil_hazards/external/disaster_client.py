"""ReliefWeb 灾害事件客户端：按国家查询近期官方灾害事件，用于交叉验证社区上报。"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Tuple

from vigil_hazards.external.base import BaseProviderClient, ProviderError
from vigil_hazards.external.models import DisasterEvent, DisasterSummary

SUMMARY_EVENT_LIMIT = 5
_INCLUDE_FIELDS = ("name", "status", "date.created", "country.name", "type.name", "url")


class DisasterProviderError(ProviderError):
    provider = "disasters"


def _first_name(value: Any, default: str) -> str:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return str(value[0].get("name") or default)
    return default


def _parse_item(item: Dict[str, Any], country: str) -> DisasterEvent:
    fields = item.get("fields") or {}
    date = fields.get("date") or {}
    return DisasterEvent(
        id=str(item.get("id", "")),
        title=str(fields.get("name") or "Unnamed event"),
        type=_first_name(fields.get("type"), "Emergency"),
        status=str(fields.get("status") or ""),
        date=date.get("created") if isinstance(date, dict) else None,
        country=_first_name(fields.get("country"), country),
        url=str(fields.get("url") or item.get("href") or ""),
    )


class DisasterClient(BaseProviderClient):
    error_cls = DisasterProviderError

    def __init__(self, *, appname: str = "vigil", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._appname = appname

    async def search(self, country: str, limit: int = 15) -> List[DisasterEvent]:
        params: List[Tuple[str, Any]] = [
            ("appname", self._appname),
            ("filter[field]", "country"),
            ("filter[value]", country),
            ("limit", max(1, limit)),
            ("sort[]", "date:desc"),
        ]
        params.extend(("fields[include][]", field) for field in _INCLUDE_FIELDS)
        data = await self._get_json("/disasters", params)
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise DisasterProviderError("disaster response missing data")
        return [_parse_item(item, country) for item in items if isinstance(item, dict)]

    async def nearby(self, country: str, limit: int = 15) -> DisasterSummary:
        events = await self.search(country, limit)
        counts = Counter(event.type for event in events)
        return DisasterSummary(
            events=events[:SUMMARY_EVENT_LIMIT],
            nearby_events=events,
            event_types=dict(counts),
        )
