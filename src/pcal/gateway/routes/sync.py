"""同步路由

POST /api/sync: 上传 SyncData（upsert + tombstone 软删除），返回 lastSyncAt。
GET /api/sync: 返回该用户所有未软删除的数据。
- 401: token 缺失或无法识别
- 403: X-PCAL-User 与 token 不一致
- 500: 云端存储失败
"""

import structlog
from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from pcal.core.models.sync import SyncData
from pcal.sync.exceptions import RemoteError

from ..deps import get_remote_store, require_user

log = structlog.get_logger()

router = APIRouter()


def _remote_failure(e: RemoteError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": str(e)})


@router.post("/api/sync")
async def push_sync(
    data: SyncData,
    user_id: str = Depends(require_user),
    remote_store=Depends(get_remote_store),
):
    """接收客户端 push"""
    try:
        last_sync_at = await remote_store.push(user_id, data)
    except RemoteError as e:
        await log.aerror("sync_push_failed", user_id=user_id, error=str(e))
        return _remote_failure(e)

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Sync completed",
            "lastSyncAt": last_sync_at.isoformat(),
        },
    )


@router.get("/api/sync")
async def pull_sync(
    user_id: str = Depends(require_user),
    remote_store=Depends(get_remote_store),
):
    """返回云端数据供客户端 pull"""
    try:
        data = await remote_store.pull(user_id)
        last_sync_at = await remote_store.get_last_sync(user_id)
    except RemoteError as e:
        await log.aerror("sync_pull_failed", user_id=user_id, error=str(e))
        return _remote_failure(e)

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "data": data.model_dump(mode="json", by_alias=True),
            "lastSyncAt": last_sync_at.isoformat() if last_sync_at else None,
        },
    )
