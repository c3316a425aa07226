from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

import httpx
import structlog
from openai import AsyncOpenAI

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class LLMEndpointsExhaustedError(RuntimeError):
    """所有端点均调用失败时抛出。"""

    def __init__(self, operation: str, states: Dict[str, Dict[str, object]]) -> None:
        super().__init__(f"LLM endpoints exhausted during {operation}")
        self.operation = operation
        self.states = states


@dataclass(frozen=True)
class LLMEndpointConfig:
    """LLM端点配置。

    Attributes:
        name: 端点名称（用于日志与监控）。
        base_url: OpenAI 兼容服务的 Base URL。
        api_key: 调用该端点时使用的 API Key。
        priority: 优先级，数值越大越先被选用。
    """

    name: str
    base_url: str
    api_key: str
    priority: int = 100


@dataclass
class LLMEndpointState:
    available: bool = True
    consecutive_failures: int = 0
    half_open: bool = False
    recovery_at: float = 0.0


class LLMEndpointManager:
    """LLM端点管理器：负责主备切换、熔断与恢复。

    - 按优先级选择可用端点，连续失败达到阈值后熔断；
    - 熔断到期后以半开状态重新试探；
    - 限流（429）时熔断时间加倍；
    - 信号量限制并发请求数，单次请求受 request_timeout 约束。
    """

    def __init__(
        self,
        endpoints: List[LLMEndpointConfig],
        *,
        client_builder: Callable[[LLMEndpointConfig], Any],
        failure_threshold: int = 3,
        recovery_seconds: int = 60,
        max_concurrency: int = 5,
        request_timeout: float = 30.0,
    ) -> None:
        if not endpoints:
            raise ValueError("至少需要一个LLM端点配置")

        self._order: List[LLMEndpointConfig] = sorted(
            endpoints, key=lambda e: e.priority, reverse=True
        )
        self._states: Dict[str, LLMEndpointState] = {
            endpoint.name: LLMEndpointState() for endpoint in self._order
        }
        self._client_builder = client_builder
        self._clients: Dict[str, Any] = {}
        self._failure_threshold = max(1, failure_threshold)
        self._recovery_seconds = max(1, recovery_seconds)
        self._request_timeout = float(request_timeout)
        self._semaphore = asyncio.Semaphore(max(1, int(max_concurrency)))

        logger.info(
            "llm_endpoint_manager_initialized",
            endpoints=[e.name for e in self._order],
            failure_threshold=self._failure_threshold,
            recovery_seconds=self._recovery_seconds,
            request_timeout_seconds=self._request_timeout,
        )

    @classmethod
    def from_endpoints(
        cls,
        endpoints: Iterable[LLMEndpointConfig],
        *,
        failure_threshold: int,
        recovery_seconds: int,
        max_concurrency: int,
        request_timeout: float,
    ) -> "LLMEndpointManager":
        endpoint_list = list(endpoints)
        if not endpoint_list:
            raise ValueError("endpoints 不能为空")

        def build_async(endpoint: LLMEndpointConfig) -> AsyncOpenAI:
            timeout = httpx.Timeout(connect=5.0, read=request_timeout, write=request_timeout, pool=request_timeout)
            return AsyncOpenAI(
                base_url=endpoint.base_url,
                api_key=endpoint.api_key,
                http_client=httpx.AsyncClient(trust_env=False, timeout=timeout),
                timeout=request_timeout,
                max_retries=0,
            )

        return cls(
            endpoint_list,
            client_builder=build_async,
            failure_threshold=failure_threshold,
            recovery_seconds=recovery_seconds,
            max_concurrency=max_concurrency,
            request_timeout=request_timeout,
        )

    def _select_endpoint(self, tried: set[str]) -> LLMEndpointConfig:
        """选择一个本轮未尝试过的可用端点；全部熔断时退回优先级最高的未尝试端点。"""
        now = time.time()
        candidates = [e for e in self._order if e.name not in tried]
        for endpoint in candidates:
            state = self._states[endpoint.name]
            if not state.available and now >= state.recovery_at:
                state.available = True
                state.half_open = True
            if state.available:
                return endpoint

        fallback = candidates[0]
        logger.warning("llm_all_endpoints_unavailable", fallback=fallback.name, states=self._snapshot())
        return fallback

    def _client_for(self, endpoint: LLMEndpointConfig) -> Any:
        client = self._clients.get(endpoint.name)
        if client is None:
            client = self._client_builder(endpoint)
            self._clients[endpoint.name] = client
        return client

    def _on_success(self, endpoint: LLMEndpointConfig, latency_ms: int) -> None:
        state = self._states[endpoint.name]
        state.consecutive_failures = 0
        state.available = True
        state.half_open = False
        logger.info("llm_endpoint_success", endpoint=endpoint.name, latency_ms=latency_ms)

    def _on_failure(self, endpoint: LLMEndpointConfig, latency_ms: int, error: BaseException) -> None:
        state = self._states[endpoint.name]
        state.consecutive_failures += 1

        status_code = getattr(error, "status_code", None)
        is_rate_limit = status_code == 429 or "429" in str(error)
        cooldown = self._recovery_seconds * (2 if is_rate_limit else 1)

        # 半开状态下一次失败立即重新熔断
        if state.half_open or is_rate_limit or state.consecutive_failures >= self._failure_threshold:
            state.available = False
            state.half_open = False
            state.recovery_at = time.time() + cooldown

        logger.warning(
            "llm_endpoint_failure",
            endpoint=endpoint.name,
            latency_ms=latency_ms,
            failure_count=state.consecutive_failures,
            marked_unavailable=not state.available,
            rate_limited=is_rate_limit,
            error=repr(error),
        )

    def _snapshot(self) -> Dict[str, Dict[str, object]]:
        return {
            name: {
                "available": state.available,
                "half_open": state.half_open,
                "failures": state.consecutive_failures,
                "recovery_at": state.recovery_at,
            }
            for name, state in self._states.items()
        }

    async def call_async(
        self,
        operation: str,
        caller: Callable[[Any, LLMEndpointConfig], Awaitable[T]],
    ) -> T:
        """异步调用入口，失败时按优先级切换到下一个端点。"""

        last_exc: Optional[BaseException] = None
        tried: set[str] = set()
        # 每个端点至多尝试一次
        for _ in range(len(self._order)):
            async with self._semaphore:
                endpoint = self._select_endpoint(tried)
                tried.add(endpoint.name)
                client = self._client_for(endpoint)
                start = time.monotonic()
                try:
                    call = caller(client, endpoint)
                    if self._request_timeout > 0:
                        result = await asyncio.wait_for(call, timeout=self._request_timeout)
                    else:
                        result = await call
                except asyncio.CancelledError as exc:
                    # 外层取消同样计入该端点失败
                    self._on_failure(endpoint, int((time.monotonic() - start) * 1000), exc)
                    raise
                except Exception as exc:  # noqa: BLE001
                    self._on_failure(endpoint, int((time.monotonic() - start) * 1000), exc)
                    last_exc = exc
                    continue
                self._on_success(endpoint, int((time.monotonic() - start) * 1000))
                return result

        snapshot = self._snapshot()
        logger.error("llm_endpoints_exhausted", operation=operation, states=snapshot)
        raise LLMEndpointsExhaustedError(operation, snapshot) from last_exc

    def status_snapshot(self) -> Dict[str, Dict[str, object]]:
        """供监控/日志使用的状态快照。"""
        return self._snapshot()

    async def aclose(self) -> None:
        for client in self._clients.values():
            close = getattr(client, "close", None)
            if close is not None:
                await close()
        self._clients.clear()
