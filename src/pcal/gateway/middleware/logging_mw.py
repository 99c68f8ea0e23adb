"""LoggingMiddleware -- sync gateway 请求日志

每个请求一条完成记录：ULID request_id、声明的 user_id、状态码与耗时。
4xx 记 warning，5xx 与未处理异常记 error；健康探针成功时不记录。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

log = structlog.get_logger()

_PROBE_PATHS = frozenset({"/health", "/ready"})


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件，响应附带 X-Request-ID"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        # 未经认证，仅用于关联日志；认证结果以 require_user 为准
        claimed_user = request.headers.get("X-PCAL-User")
        if claimed_user:
            structlog.contextvars.bind_contextvars(user_id=claimed_user)

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            await log.aexception("request_failed", duration_ms=_elapsed_ms(start))
            raise

        status = response.status_code
        duration_ms = _elapsed_ms(start)
        if status >= 500:
            await log.aerror("request_completed", status_code=status, duration_ms=duration_ms)
        elif status >= 400:
            await log.awarning("request_completed", status_code=status, duration_ms=duration_ms)
        elif request.url.path not in _PROBE_PATHS:
            await log.ainfo("request_completed", status_code=status, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        return response
