"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，验证云端数据库连通性。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from pcal.sync.exceptions import RemoteError

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 云端数据库可查询时返回 200，否则 503"""
    checks = {}
    try:
        await request.app.state.remote_store.ping()
        checks["sqlite"] = "ok"
    except (AttributeError, ValueError, RemoteError) as e:
        # AttributeError: lifespan 未初始化；ValueError: 连接已关闭
        log.warning("ready_check_failed", error=str(e))
        checks["sqlite"] = f"error: {e}"

    all_ok = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )
