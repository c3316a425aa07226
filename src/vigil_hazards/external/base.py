from __future__ import annotations

from typing import Any, Mapping, Sequence, Tuple, Union

import httpx

QueryParams = Union[Mapping[str, Any], Sequence[Tuple[str, Any]], None]


class ProviderError(RuntimeError):
    """外部数据源调用失败（HTTP 错误、超时或响应格式异常）。"""

    provider = "provider"

    def __init__(self, message: str, *, info: str | None = None) -> None:
        super().__init__(message)
        self.info = info


class BaseProviderClient:
    """外部数据源客户端基类：可注入 httpx.AsyncClient，自建的客户端由 close() 释放。"""

    error_cls: type[ProviderError] = ProviderError

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            trust_env=False,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, url: str, params: QueryParams = None) -> Any:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise self.error_cls(f"{self.error_cls.provider} http error", info=str(exc)) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise self.error_cls(f"{self.error_cls.provider} returned invalid json", info=str(exc)) from exc
