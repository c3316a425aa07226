"""预测测试共用的 LLM 桩对象。"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List


def candidate(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "type": "flood",
        "description": "Localized flooding likely along the drainage channel",
        "confidence": 80,
        "radius_meters": 1000,
        "expires_hours": 6,
        "reasoning": "Multiple drainage reports with heavy rain",
        "weather_influence": "12mm precipitation and 85% humidity",
        "urgency_level": "high",
        "lat_offset": 0,
        "lng_offset": 0,
    }
    payload.update(overrides)
    return payload


def completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class StubChatClient:
    """与 AsyncOpenAI 接口兼容的桩：responder(调用参数) -> 返回内容或异常。"""

    def __init__(self, responder: Callable[[Dict[str, Any]], Any]) -> None:
        self._responder = responder
        self.calls: List[Dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        result = self._responder(kwargs)
        if isinstance(result, Exception):
            raise result
        return completion(result)


def batch_json(*candidates: Dict[str, Any]) -> str:
    return json.dumps({"predictions": list(candidates)})
