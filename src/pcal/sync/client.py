"""CloudSyncClient -- sync gateway HTTP 客户端

通过 httpx.AsyncClient 调用 gateway 的 /api/sync，满足 SyncRemote 接口。
不做重试；传输错误与非 2xx 响应统一包装为 RemoteError。
"""

import time
from datetime import datetime
from typing import Any

import httpx
import structlog

from pcal.core.models.sync import SyncData

from .exceptions import RemoteError

log = structlog.get_logger()

SYNC_PATH = "/api/sync"
USER_HEADER = "X-PCAL-User"

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5


class CloudSyncClient:
    """sync gateway 客户端"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: str = "",
        timeout_s: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """初始化客户端

        Args:
            base_url: gateway 基础 URL
            token: Bearer token，由 gateway 的 IdentityResolver 解析为 user_id
            timeout_s: 请求超时（秒）
            transport: 可选的 httpx transport（测试时注入 ASGITransport）
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_s = timeout_s
        self._transport = transport

    async def push(self, user_id: str, data: SyncData) -> datetime:
        """POST /api/sync，返回 gateway 记录的 lastSyncAt"""
        body = await self._request("POST", user_id, json=data.to_wire())
        return datetime.fromisoformat(body["lastSyncAt"])

    async def pull(self, user_id: str) -> SyncData:
        """GET /api/sync，返回未软删除的云端数据"""
        body = await self._request("GET", user_id)
        return SyncData.model_validate(body.get("data") or {})

    async def health_check(self) -> bool:
        """检查 gateway 可达性

        注意: 此方法不抛出异常，不可达或非 200 时返回 False。
        """
        try:
            async with self._client(timeout=HEALTH_CHECK_TIMEOUT_S) as http_client:
                resp = await http_client.get("/health")
            return resp.status_code == 200
        except httpx.HTTPError as e:
            log.warning("sync_health_check_failed", url=self._base_url, error=str(e))
            return False

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        user_id: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        start_time = time.monotonic()
        headers = {
            "Authorization": f"Bearer {self._token}",
            USER_HEADER: user_id,
        }
        try:
            async with self._client(timeout=self._timeout_s) as http_client:
                resp = await http_client.request(method, SYNC_PATH, headers=headers, json=json)
        except httpx.HTTPError as e:
            await log.aerror(
                "sync_request_failed",
                method=method,
                url=self._base_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RemoteError(f"Sync gateway unreachable: {e}") from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        if resp.is_error:
            message = _error_message(resp)
            await log.aerror(
                "sync_request_rejected",
                method=method,
                status=resp.status_code,
                error=message,
                duration_ms=duration_ms,
            )
            raise RemoteError(message, status=resp.status_code)

        await log.ainfo(
            "sync_request_completed",
            method=method,
            status=resp.status_code,
            duration_ms=duration_ms,
        )
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError("Sync gateway returned invalid JSON", status=resp.status_code) from e


def _error_message(resp: httpx.Response) -> str:
    """从错误响应中提取 error 字段，取不到时使用状态行"""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error") or body.get("detail")
        if isinstance(error, str):
            return error
    return f"Sync gateway responded {resp.status_code}"
