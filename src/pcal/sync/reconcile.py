"""Reconciler -- 本地物化视图与云端存储的同步

push: 本地 children / entries / goals 与 journal tombstone 全量上传（云端 upsert）。
pull: 云端数据写回本地；DailyEntry 经 JournalService 以 ENTRY_CREATED 快照写入，
之后的重放能得到相同状态。
远端调用失败时 RemoteError 直接抛出，不做重试。
"""

import time
from datetime import datetime

import structlog

from pcal.core.journal import JournalService
from pcal.core.models.enums import EventType
from pcal.core.models.sync import PullResult, SyncData
from pcal.core.store import StoreGroup

from .protocols import SyncRemote

log = structlog.get_logger()


class Reconciler:
    """同步协调器"""

    def __init__(self, store_group: StoreGroup, remote: SyncRemote) -> None:
        self._store_group = store_group
        self._remote = remote
        self._journal = JournalService(store_group)

    async def collect_local(self) -> SyncData:
        """收集本地待上传数据

        deleted_entry_ids: journal 中被 ENTRY_DELETED 且当前不在物化视图中的 entry。
        """
        children = await self._store_group.children.list_children()
        entries = await self._store_group.entries.list_entries()
        goals = await self._store_group.goals.list_goals()
        return SyncData(
            children=children,
            daily_entries=entries,
            goals=goals,
            deleted_entry_ids=await self._tombstoned_ids({e.id for e in entries}),
        )

    async def push(self, user_id: str) -> datetime:
        """上传本地数据，返回云端记录的同步时间"""
        with structlog.contextvars.bound_contextvars(user_id=user_id, sync_direction="push"):
            return await self._push(user_id)

    async def _push(self, user_id: str) -> datetime:
        start_time = time.monotonic()
        data = await self.collect_local()
        last_sync_at = await self._remote.push(user_id, data)

        await log.ainfo(
            "sync_push_completed",
            children=len(data.children),
            daily_entries=len(data.daily_entries),
            goals=len(data.goals),
            deleted_entries=len(data.deleted_entry_ids),
            last_sync_at=last_sync_at.isoformat(),
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        return last_sync_at

    async def pull(self, user_id: str) -> PullResult:
        """拉取云端数据写回本地

        - children / goals 直接 upsert
        - 本地缺失或内容不同的 entry 以快照事件写入（先 journal）
        - 内容相同的 entry 跳过，重复 pull 不追加事件
        - 本地 journal 已删除的 entry 不恢复
        """
        with structlog.contextvars.bound_contextvars(user_id=user_id, sync_direction="pull"):
            return await self._pull(user_id)

    async def _pull(self, user_id: str) -> PullResult:
        start_time = time.monotonic()
        # 远端失败时此处抛出，本地尚未被修改
        data = await self._remote.pull(user_id)

        if data.children:
            await self._store_group.children.put_many(data.children)
        if data.goals:
            await self._store_group.goals.put_many(data.goals)

        local_ids = {e.id for e in await self._store_group.entries.list_entries()}
        deleted = set(await self._tombstoned_ids(local_ids))

        result = PullResult(children=len(data.children), goals=len(data.goals))
        for remote_entry in data.daily_entries:
            if remote_entry.id in deleted:
                result.entries_skipped += 1
                continue
            local_entry = await self._store_group.entries.get(remote_entry.id)
            if local_entry is not None and local_entry.model_dump() == remote_entry.model_dump():
                result.entries_unchanged += 1
                continue
            await self._journal.restore_entry_snapshot(remote_entry)
            result.entries_restored += 1

        await log.ainfo(
            "sync_pull_completed",
            **result.model_dump(),
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        return result

    async def _tombstoned_ids(self, live_ids: set[str]) -> list[str]:
        deleted: list[str] = []
        events = await self._store_group.ledger.read_by_type(EventType.ENTRY_DELETED)
        for event in events:
            entry_id = event.payload.get("entryId")
            if entry_id and entry_id not in live_ids and entry_id not in deleted:
                deleted.append(entry_id)
        return deleted
