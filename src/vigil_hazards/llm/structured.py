"""
结构化生成调用

功能：system prompt + user prompt + pydantic schema -> 经过 schema 校验的对象
约束：
- JSON mode 输出，pydantic 严格校验，越界/缺字段直接抛 StructuredOutputError（不做字段级容错）
- 单次调用受 timeout_seconds 约束
- 默认只调用一次；max_attempts > 1 时按指数退避重试
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from vigil_hazards.llm.client import AsyncLLMClientProtocol
from vigil_hazards.logging import generation_latency_metric

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class StructuredOutputError(RuntimeError):
    """模型输出为空、不是合法JSON或不符合schema。"""

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class StructuredGenerator:
    def __init__(
        self,
        client: AsyncLLMClientProtocol,
        *,
        model: str,
        timeout_seconds: float = 30.0,
        max_attempts: int = 1,
        backoff_seconds: float = 0.5,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds 必须大于 0")
        self._client = client
        self._model = model
        self._timeout = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._backoff = max(0.0, backoff_seconds)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Type[T],
        *,
        temperature: float,
    ) -> T:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self._max_attempts + 1):
            start = time.monotonic()
            try:
                result = await asyncio.wait_for(
                    self._generate_once(system_prompt, user_prompt, schema, temperature),
                    timeout=self._timeout,
                )
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                logger.warning(
                    "structured_generation_attempt_failed",
                    schema=schema.__name__,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    error_type=type(exc).__name__,
                    error=str(exc)[:300],
                )
                if attempt < self._max_attempts:
                    await asyncio.sleep(self._backoff * (2 ** (attempt - 1)))
                continue
            finally:
                generation_latency_metric.observe(time.monotonic() - start)
            return result

        assert last_exc is not None
        raise last_exc

    async def _generate_once(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Type[T],
        temperature: float,
    ) -> T:
        schema_text = json.dumps(schema.model_json_schema(), ensure_ascii=False)
        completion = await self._client.chat.completions.create(
            model=self._model,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=[
                {
                    "role": "system",
                    "content": f"{system_prompt}\n\nRespond with a single JSON object that conforms to this JSON Schema:\n{schema_text}",
                },
                {"role": "user", "content": user_prompt},
            ],
        )
        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise StructuredOutputError("empty completion content")
        logger.debug("structured_generation_raw", schema=schema.__name__, response=content[:1000])
        try:
            return schema.model_validate_json(content)
        except ValidationError as exc:
            raise StructuredOutputError(
                f"completion does not match {schema.__name__}: {exc.error_count()} error(s)",
                raw=content,
            ) from exc
