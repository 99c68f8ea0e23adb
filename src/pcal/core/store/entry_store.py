"""DailyEntry 物化视图 SQLite 实现

daily_entries 表是 journal 的物化视图（projection），可随时清空并从 journal 重建。
此处仅提供数据库操作，写入顺序（先 journal 后物化视图）由调用方保证。
"""

import json

import aiosqlite

from ..models.entry import ActivityLine, DailyEntry
from .transaction import atomic, reading

_SELECT_COLUMNS = """
SELECT id, date, child_id, lines, signature_base64, ai_summary,
       ai_summary_provider, is_locked, emailed_at
FROM daily_entries
"""

_UPSERT_SQL = """
INSERT OR REPLACE INTO daily_entries (
    id, date, child_id, lines, signature_base64, ai_summary,
    ai_summary_provider, is_locked, emailed_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


class SqliteEntryStore:
    """DailyEntry 物化视图的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get(self, entry_id: str) -> DailyEntry | None:
        """根据 id 查询 entry"""
        async with reading("daily_entries.get"):
            cursor = await self._conn.execute(
                f"{_SELECT_COLUMNS} WHERE id = ?",
                (entry_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    async def list_entries(self, child_id: str | None = None) -> list[DailyEntry]:
        """查询 entry 列表，支持按 child 筛选，按 date 倒序"""
        async with reading("daily_entries.list"):
            if child_id:
                cursor = await self._conn.execute(
                    f"{_SELECT_COLUMNS} WHERE child_id = ? ORDER BY date DESC, id ASC",
                    (child_id,),
                )
            else:
                cursor = await self._conn.execute(
                    f"{_SELECT_COLUMNS} ORDER BY date DESC, id ASC"
                )
            rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def count(self) -> int:
        async with reading("daily_entries.count"):
            cursor = await self._conn.execute("SELECT COUNT(*) FROM daily_entries")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def put(self, entry: DailyEntry) -> None:
        """写入或覆盖单个 entry"""
        async with atomic(self._conn, "daily_entries.put"):
            await self._conn.execute(_UPSERT_SQL, self._entry_params(entry))

    async def put_many(self, entries: list[DailyEntry]) -> None:
        """批量写入或覆盖（单个事务）"""
        async with atomic(self._conn, "daily_entries.put_many"):
            await self._conn.executemany(
                _UPSERT_SQL,
                [self._entry_params(entry) for entry in entries],
            )

    async def delete(self, entry_id: str) -> None:
        async with atomic(self._conn, "daily_entries.delete"):
            await self._conn.execute(
                "DELETE FROM daily_entries WHERE id = ?",
                (entry_id,),
            )

    async def replace_all(self, entries: list[DailyEntry]) -> None:
        """整体替换：同一事务内清空后批量写入，不做增量合并"""
        async with atomic(self._conn, "daily_entries.replace_all"):
            await self._conn.execute("DELETE FROM daily_entries")
            await self._conn.executemany(
                _UPSERT_SQL,
                [self._entry_params(entry) for entry in entries],
            )

    async def clear(self) -> None:
        async with atomic(self._conn, "daily_entries.clear"):
            await self._conn.execute("DELETE FROM daily_entries")

    @staticmethod
    def _entry_params(entry: DailyEntry) -> tuple:
        return (
            entry.id,
            entry.date,
            entry.child_id,
            json.dumps([line.to_wire() for line in entry.lines], ensure_ascii=False),
            entry.signature_base64,
            entry.ai_summary,
            entry.ai_summary_provider,
            int(entry.is_locked),
            entry.emailed_at,
        )

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> DailyEntry:
        """将数据库行转换为 DailyEntry 模型"""
        lines_data = json.loads(row[3]) if row[3] else []
        return DailyEntry(
            id=row[0],
            date=row[1],
            child_id=row[2],
            lines=[ActivityLine.model_validate(line) for line in lines_data],
            signature_base64=row[4],
            ai_summary=row[5],
            ai_summary_provider=row[6],
            is_locked=bool(row[7]),
            emailed_at=row[8],
        )
