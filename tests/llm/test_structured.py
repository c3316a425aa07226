from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, List

import pytest
from pydantic import BaseModel, Field

from vigil_hazards.llm.structured import StructuredGenerator, StructuredOutputError


class _Answer(BaseModel):
    label: str
    score: int = Field(..., ge=0, le=10)


class _ScriptedClient:
    def __init__(self, outcomes: List[Any]) -> None:
        self._outcomes = outcomes
        self.calls: List[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == "__hang__":
            await asyncio.sleep(5)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


@pytest.mark.anyio
async def test_generate_returns_validated_model() -> None:
    client = _ScriptedClient([json.dumps({"label": "flood", "score": 7})])
    generator = StructuredGenerator(client, model="m")
    answer = await generator.generate("sys", "user", _Answer, temperature=0.3)
    assert answer == _Answer(label="flood", score=7)

    messages = client.calls[0]["messages"]
    assert messages[0]["role"] == "system"
    assert messages[0]["content"].startswith("sys")
    assert '"score"' in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "user"}


@pytest.mark.anyio
async def test_schema_violation_raises_structured_output_error() -> None:
    client = _ScriptedClient([json.dumps({"label": "flood", "score": 11})])
    generator = StructuredGenerator(client, model="m")
    with pytest.raises(StructuredOutputError) as exc_info:
        await generator.generate("sys", "user", _Answer, temperature=0.3)
    assert exc_info.value.raw is not None
    assert len(client.calls) == 1


@pytest.mark.anyio
async def test_empty_content_raises() -> None:
    generator = StructuredGenerator(_ScriptedClient([None]), model="m")
    with pytest.raises(StructuredOutputError):
        await generator.generate("sys", "user", _Answer, temperature=0.3)


@pytest.mark.anyio
async def test_timeout_raises() -> None:
    generator = StructuredGenerator(_ScriptedClient(["__hang__"]), model="m", timeout_seconds=0.05)
    with pytest.raises(asyncio.TimeoutError):
        await generator.generate("sys", "user", _Answer, temperature=0.3)


@pytest.mark.anyio
async def test_retries_when_configured() -> None:
    client = _ScriptedClient([ConnectionError("reset"), json.dumps({"label": "fire", "score": 3})])
    generator = StructuredGenerator(client, model="m", max_attempts=2, backoff_seconds=0.01)
    answer = await generator.generate("sys", "user", _Answer, temperature=0.3)
    assert answer.label == "fire"
    assert len(client.calls) == 2


def test_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        StructuredGenerator(_ScriptedClient([]), model="m", timeout_seconds=0)
