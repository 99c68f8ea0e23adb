"""依赖注入模块 -- 通过 FastAPI Depends 注入云端存储与已解析的 user_id

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Header, HTTPException, Request

from pcal.sync.remote_store import SqliteRemoteStore

from .identity import IdentityResolver


def get_remote_store(request: Request) -> SqliteRemoteStore:
    """从 app.state 获取 SqliteRemoteStore 实例"""
    return request.app.state.remote_store


def get_identity(request: Request) -> IdentityResolver:
    return request.app.state.identity


def require_user(
    request: Request,
    authorization: str | None = Header(default=None),
    x_pcal_user: str | None = Header(default=None),
) -> str:
    """解析 Bearer token 为 user_id

    - token 缺失或无法识别: 401
    - X-PCAL-User 与 token 对应的用户不一致: 403
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing bearer token")

    user_id = get_identity(request).resolve(token.strip())
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    if x_pcal_user is not None and x_pcal_user != user_id:
        raise HTTPException(status_code=403, detail="User does not match token")

    return user_id
