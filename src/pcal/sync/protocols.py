"""同步目标 Protocol

Reconciler 只依赖 push / pull 两个操作；
SqliteRemoteStore（直连）与 CloudSyncClient（HTTP）都满足此接口。
"""

from datetime import datetime
from typing import Protocol

from pcal.core.models.sync import SyncData


class SyncRemote(Protocol):
    """云端同步目标"""

    async def push(self, user_id: str, data: SyncData) -> datetime:
        """上传本地数据，返回云端记录的 last_sync_at"""
        ...

    async def pull(self, user_id: str) -> SyncData:
        """拉取该用户所有未软删除的数据"""
        ...
