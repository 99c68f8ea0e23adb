"""FastAPI 应用主文件

app 创建 + lifespan 管理：云端数据库打开/关闭、身份解析器初始化、路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from pcal.core.config import get_remote_db_path
from pcal.core.logging_config import setup_logging
from pcal.sync.remote_store import open_remote_store

from .identity import StaticTokenIdentity
from .middleware.logging_mw import LoggingMiddleware
from .routes import health, sync

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时打开云端数据库，关闭时清理连接"""
    db_path = get_remote_db_path()
    app.state.remote_store = await open_remote_store(db_path)
    app.state.identity = StaticTokenIdentity.from_env()
    log.info("sync_gateway_started", remote_db_path=db_path)

    yield

    if getattr(app.state, "remote_store", None):
        await app.state.remote_store.close()


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """HTTP 错误统一为 {success: false, error}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="PCAL Sync Gateway",
        version="0.1.0",
        description="PCAL 云端同步 API",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    setup_logging()

    app.include_router(sync.router, tags=["sync"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
