"""SqliteRemoteStore -- 云端关系型存储

行级 upsert：同 (user_id, key) 的行被覆盖字段并清除 deleted_at（删除后再同步即复活）。
软删除只设置 deleted_at，读操作对软删除行不可见。
所有数据库错误（含超出 INTEGER 范围的参数）包装为 RemoteError。
"""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import structlog

from pcal.core.models.entry import ActivityLine, DailyEntry
from pcal.core.models.event import Event
from pcal.core.models.reference import Child, Goal
from pcal.core.models.sync import SyncData
from pcal.core.store.transaction import STORAGE_ERRORS

from .exceptions import RemoteError
from .remote_schema import NOW_SQL, init_remote_db

log = structlog.get_logger()

_CHILD_UPSERT_SQL = """
INSERT INTO children (id, user_id, name, center, teacher)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT (user_id, id) DO UPDATE SET
    name = excluded.name,
    center = excluded.center,
    teacher = excluded.teacher,
    deleted_at = NULL
"""

_ENTRY_UPSERT_SQL = """
INSERT INTO daily_entries (
    id, user_id, date, child_id, lines, signature_base64,
    ai_summary, ai_summary_provider, is_locked, emailed_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (user_id, id) DO UPDATE SET
    date = excluded.date,
    child_id = excluded.child_id,
    lines = excluded.lines,
    signature_base64 = excluded.signature_base64,
    ai_summary = excluded.ai_summary,
    ai_summary_provider = excluded.ai_summary_provider,
    is_locked = excluded.is_locked,
    emailed_at = excluded.emailed_at,
    deleted_at = NULL
"""

_GOAL_UPSERT_SQL = """
INSERT INTO goals (code, user_id, description, activities)
VALUES (?, ?, ?, ?)
ON CONFLICT (user_id, code) DO UPDATE SET
    description = excluded.description,
    activities = excluded.activities,
    deleted_at = NULL
"""

_JOURNAL_INSERT_SQL = """
INSERT INTO journal_events (id, user_id, timestamp, type, payload, checksum)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT (user_id, id) DO NOTHING
"""


class SqliteRemoteStore:
    """云端存储的 aiosqlite 实现

    与 gateway 进程共享一个连接；每个用户的数据以 user_id 隔离。
    写事务由 _write_lock 串行化：一个请求的回滚不能丢弃另一个请求未提交的语句。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn
        self._write_lock = asyncio.Lock()

    async def close(self) -> None:
        await self._conn.close()

    async def ping(self) -> None:
        """连通性检查（readiness 使用）"""
        async with self._read("ping"):
            cursor = await self._conn.execute("SELECT 1")
            await cursor.fetchone()

    # ============================================================
    # 用户
    # ============================================================

    async def ensure_user(self, user_id: str) -> None:
        """用户不存在时插入"""
        async with self._write("users.ensure"):
            await self._conn.execute(
                "INSERT INTO users (user_id) VALUES (?) ON CONFLICT (user_id) DO NOTHING",
                (user_id,),
            )

    async def update_last_sync(self, user_id: str) -> datetime:
        """记录同步时间并返回"""
        await self.ensure_user(user_id)
        now = datetime.now(UTC)
        async with self._write("users.update_last_sync"):
            await self._conn.execute(
                "UPDATE users SET last_sync_at = ? WHERE user_id = ?",
                (now.isoformat(), user_id),
            )
        return now

    async def get_last_sync(self, user_id: str) -> datetime | None:
        async with self._read("users.get_last_sync"):
            cursor = await self._conn.execute(
                "SELECT last_sync_at FROM users WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
        if row is None or row[0] is None:
            return None
        return datetime.fromisoformat(row[0])

    # ============================================================
    # 行级 upsert（逐行独立提交）
    # ============================================================

    async def sync_children(self, user_id: str, children: list[Child]) -> None:
        await self.ensure_user(user_id)
        for child in children:
            async with self._write("children.upsert"):
                await self._conn.execute(
                    _CHILD_UPSERT_SQL,
                    (child.id, user_id, child.name, child.center, child.teacher),
                )

    async def sync_daily_entries(self, user_id: str, entries: list[DailyEntry]) -> None:
        await self.ensure_user(user_id)
        for entry in entries:
            async with self._write("daily_entries.upsert"):
                await self._conn.execute(
                    _ENTRY_UPSERT_SQL,
                    (
                        entry.id,
                        user_id,
                        entry.date,
                        entry.child_id,
                        json.dumps(
                            [line.to_wire() for line in entry.lines],
                            ensure_ascii=False,
                        ),
                        entry.signature_base64,
                        entry.ai_summary,
                        entry.ai_summary_provider,
                        1 if entry.is_locked else 0,
                        entry.emailed_at,
                    ),
                )

    async def sync_goals(self, user_id: str, goals: list[Goal]) -> None:
        await self.ensure_user(user_id)
        for goal in goals:
            async with self._write("goals.upsert"):
                await self._conn.execute(
                    _GOAL_UPSERT_SQL,
                    (
                        goal.code,
                        user_id,
                        goal.description,
                        json.dumps(goal.activities, ensure_ascii=False),
                    ),
                )

    async def sync_journal_events(self, user_id: str, events: list[Event]) -> int:
        """镜像 journal 事件（不可变，已存在的 id 忽略）

        Returns:
            新插入的事件数
        """
        await self.ensure_user(user_id)
        inserted = 0
        async with self._write("journal_events.insert"):
            for event in events:
                cursor = await self._conn.execute(
                    _JOURNAL_INSERT_SQL,
                    (
                        event.id,
                        user_id,
                        event.timestamp,
                        event.type,
                        json.dumps(event.payload, ensure_ascii=False),
                        event.checksum,
                    ),
                )
                inserted += cursor.rowcount
        return inserted

    # ============================================================
    # 读取（仅未软删除的行）
    # ============================================================

    async def get_children(self, user_id: str) -> list[Child]:
        async with self._read("children.list"):
            cursor = await self._conn.execute(
                """
                SELECT id, name, center, teacher FROM children
                WHERE user_id = ? AND deleted_at IS NULL
                ORDER BY created_at ASC, id ASC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [Child(id=r[0], name=r[1], center=r[2], teacher=r[3]) for r in rows]

    async def get_daily_entries(self, user_id: str) -> list[DailyEntry]:
        async with self._read("daily_entries.list"):
            cursor = await self._conn.execute(
                """
                SELECT id, date, child_id, lines, signature_base64, ai_summary,
                       ai_summary_provider, is_locked, emailed_at
                FROM daily_entries
                WHERE user_id = ? AND deleted_at IS NULL
                ORDER BY created_at ASC, id ASC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [
            DailyEntry(
                id=r[0],
                date=r[1],
                child_id=r[2],
                lines=[ActivityLine.model_validate(line) for line in json.loads(r[3] or "[]")],
                signature_base64=r[4],
                ai_summary=r[5],
                ai_summary_provider=r[6],
                is_locked=bool(r[7]),
                emailed_at=r[8],
            )
            for r in rows
        ]

    async def get_goals(self, user_id: str) -> list[Goal]:
        async with self._read("goals.list"):
            cursor = await self._conn.execute(
                """
                SELECT code, description, activities FROM goals
                WHERE user_id = ? AND deleted_at IS NULL
                ORDER BY code ASC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [
            Goal(code=r[0], description=r[1], activities=json.loads(r[2] or "[]"))
            for r in rows
        ]

    async def get_journal_events(self, user_id: str) -> list[Event]:
        async with self._read("journal_events.list"):
            cursor = await self._conn.execute(
                """
                SELECT id, timestamp, type, payload, checksum FROM journal_events
                WHERE user_id = ?
                ORDER BY timestamp ASC, rowid ASC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [
            Event(
                id=r[0],
                timestamp=r[1],
                type=r[2],
                payload=json.loads(r[3]),
                checksum=r[4],
            )
            for r in rows
        ]

    # ============================================================
    # 软删除 / 清理
    # ============================================================

    async def soft_delete_children(self, user_id: str, child_ids: list[str]) -> int:
        return await self._soft_delete("children", "id", user_id, child_ids)

    async def soft_delete_daily_entries(self, user_id: str, entry_ids: list[str]) -> int:
        return await self._soft_delete("daily_entries", "id", user_id, entry_ids)

    async def soft_delete_goals(self, user_id: str, codes: list[int]) -> int:
        return await self._soft_delete("goals", "code", user_id, codes)

    async def delete_user_data(self, user_id: str) -> None:
        """物理删除该用户的全部数据（注销账号 / 测试清理）"""
        async with self._write("users.delete"):
            for table in ("journal_events", "daily_entries", "goals", "children", "users"):
                await self._conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
        await log.ainfo("remote_user_data_deleted", user_id=user_id)

    # ============================================================
    # 组合操作（gateway / Reconciler 使用）
    # ============================================================

    async def push(self, user_id: str, data: SyncData) -> datetime:
        """上传一批数据：upsert 全部行，再软删除 tombstone，最后记录同步时间"""
        if data.children:
            await self.sync_children(user_id, data.children)
        if data.daily_entries:
            await self.sync_daily_entries(user_id, data.daily_entries)
        if data.goals:
            await self.sync_goals(user_id, data.goals)
        deleted = 0
        if data.deleted_entry_ids:
            deleted = await self.soft_delete_daily_entries(user_id, data.deleted_entry_ids)

        last_sync_at = await self.update_last_sync(user_id)
        await log.ainfo(
            "remote_push_applied",
            user_id=user_id,
            children=len(data.children),
            daily_entries=len(data.daily_entries),
            goals=len(data.goals),
            soft_deleted=deleted,
        )
        return last_sync_at

    async def pull(self, user_id: str) -> SyncData:
        return SyncData(
            children=await self.get_children(user_id),
            daily_entries=await self.get_daily_entries(user_id),
            goals=await self.get_goals(user_id),
        )

    # ============================================================
    # 内部
    # ============================================================

    async def _soft_delete(
        self,
        table: str,
        key: str,
        user_id: str,
        keys: list,
    ) -> int:
        affected = 0
        async with self._write(f"{table}.soft_delete"):
            for value in keys:
                cursor = await self._conn.execute(
                    f"""
                    UPDATE {table} SET deleted_at = {NOW_SQL}
                    WHERE user_id = ? AND {key} = ? AND deleted_at IS NULL
                    """,
                    (user_id, value),
                )
                affected += cursor.rowcount
        return affected

    @asynccontextmanager
    async def _write(self, operation: str) -> AsyncIterator[None]:
        async with self._write_lock:
            try:
                yield
                await self._conn.commit()
            except STORAGE_ERRORS as e:
                await self._conn.rollback()
                await log.aerror("remote_store_error", operation=operation, error=str(e))
                raise RemoteError(f"Remote store {operation} failed: {e}") from e
            except Exception:
                await self._conn.rollback()
                raise

    @asynccontextmanager
    async def _read(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except STORAGE_ERRORS as e:
            await log.aerror("remote_store_error", operation=operation, error=str(e))
            raise RemoteError(f"Remote store {operation} failed: {e}") from e


async def open_remote_store(db_path: str) -> SqliteRemoteStore:
    """打开（必要时创建）云端数据库

    Args:
        db_path: SQLite 数据库文件路径
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(db_path)
    await init_remote_db(conn)
    return SqliteRemoteStore(conn)
