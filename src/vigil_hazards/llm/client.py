from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from vigil_hazards.llm.endpoint_manager import LLMEndpointConfig, LLMEndpointManager

if TYPE_CHECKING:
    from vigil_hazards.config import AppConfig


class _ChatCompletionsProtocol(Protocol):
    async def create(self, *args: Any, **kwargs: Any) -> Any: ...


class _ChatNamespace(Protocol):
    completions: _ChatCompletionsProtocol


class AsyncLLMClientProtocol(Protocol):
    """与 openai.AsyncOpenAI 兼容的最小接口，测试中可用桩对象替换。"""

    chat: _ChatNamespace


class _AsyncFailoverChatCompletions:
    """异步聊天完成封装：每次请求都交给端点管理器选择端点。"""

    def __init__(self, manager: LLMEndpointManager) -> None:
        self._manager = manager

    async def create(self, *args: Any, **kwargs: Any) -> Any:
        async def caller(client: Any, endpoint: LLMEndpointConfig) -> Any:
            return await client.chat.completions.create(*args, **kwargs)

        return await self._manager.call_async("chat_completion", caller)


class _AsyncFailoverChat:
    def __init__(self, manager: LLMEndpointManager) -> None:
        self.completions = _AsyncFailoverChatCompletions(manager)


class FailoverAsyncLLMClient:
    """异步LLM客户端封装，外部接口与 AsyncOpenAI 兼容。"""

    def __init__(self, manager: LLMEndpointManager) -> None:
        self.chat = _AsyncFailoverChat(manager)
        self._manager = manager

    async def aclose(self) -> None:
        await self._manager.aclose()


def build_async_llm_client(config: "AppConfig") -> FailoverAsyncLLMClient:
    manager = LLMEndpointManager.from_endpoints(
        config.llm_endpoints,
        failure_threshold=config.llm_failure_threshold,
        recovery_seconds=config.llm_recovery_seconds,
        max_concurrency=config.llm_max_concurrency,
        request_timeout=config.llm_request_timeout_seconds,
    )
    return FailoverAsyncLLMClient(manager)
