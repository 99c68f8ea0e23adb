"""Journal（事件日志）SQLite 实现

journal 表 append-only：只允许插入，不允许更新或删除。
timestamp 在同一 journal 内单调不减；同一 timestamp 按写入顺序（seq）排序。
此模块不读取物化视图，journal 自身完整，这是重放可行的前提。
"""

import json
import time
from collections.abc import Callable, Iterable
from typing import Any

import aiosqlite
import structlog
from ulid import ULID

from ..checksum import checksum
from ..models.enums import EventType
from ..models.event import Event
from .transaction import atomic, reading

log = structlog.get_logger()

_SELECT_COLUMNS = "SELECT id, timestamp, type, payload, checksum FROM journal"


def _now_ms() -> int:
    """当前墙钟时间（epoch ms）"""
    return int(time.time() * 1000)


class SqliteLedgerStore:
    """Journal 的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """
        Args:
            conn: 数据库连接
            clock: 返回 epoch ms 的时钟，测试时可注入
        """
        self._conn = conn
        self._clock = clock or _now_ms

    async def append(self, event_type: EventType, payload: dict[str, Any]) -> Event:
        """追加事件（append-only）

        checksum 在任何 I/O 之前计算；timestamp 取 max(clock, 上一条事件 timestamp)。

        Raises:
            SerializationError: payload 无法序列化
            PersistenceError: SQLite 拒绝写入，此时物化视图不应被更新
        """
        digest = checksum(payload)

        async with atomic(self._conn, "journal.append"):
            cursor = await self._conn.execute(
                "SELECT COALESCE(MAX(timestamp), 0) FROM journal"
            )
            row = await cursor.fetchone()
            last_ts = row[0] if row else 0

            event = Event(
                id=str(ULID()),
                timestamp=max(self._clock(), last_ts),
                type=event_type.value,
                payload=payload,
                checksum=digest,
            )
            await self._insert(event)

        await log.adebug(
            "ledger_event_appended",
            event_id=event.id,
            event_type=event.type,
            timestamp=event.timestamp,
        )
        return event

    async def read_all(self) -> list[Event]:
        """读取全部事件，按 timestamp 正序，同一 timestamp 按写入顺序"""
        async with reading("journal.read_all"):
            cursor = await self._conn.execute(
                f"{_SELECT_COLUMNS} ORDER BY timestamp ASC, seq ASC"
            )
            rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def read_by_type(self, event_type: EventType) -> list[Event]:
        """读取指定类型的事件，排序同 read_all"""
        async with reading("journal.read_by_type"):
            cursor = await self._conn.execute(
                f"{_SELECT_COLUMNS} WHERE type = ? ORDER BY timestamp ASC, seq ASC",
                (event_type.value,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def count(self) -> int:
        """事件总数"""
        async with reading("journal.count"):
            cursor = await self._conn.execute("SELECT COUNT(*) FROM journal")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def import_events(
        self,
        events: Iterable[Event],
        skip_existing: bool = True,
    ) -> int:
        """按原样写入事件（保留 id / timestamp / checksum），用于备份恢复

        Args:
            events: 要写入的事件，按 timestamp 排序后写入
            skip_existing: True 时跳过已存在的 id

        Returns:
            实际写入的事件数
        """
        ordered = sorted(events, key=lambda e: e.timestamp)
        verb = "INSERT OR IGNORE" if skip_existing else "INSERT"
        inserted = 0

        async with atomic(self._conn, "journal.import_events"):
            for event in ordered:
                cursor = await self._conn.execute(
                    f"""
                    {verb} INTO journal (id, timestamp, type, payload, checksum)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    self._event_params(event),
                )
                inserted += cursor.rowcount
        return inserted

    async def clear(self) -> None:
        """清空 journal -- 仅供备份 replace 导入使用"""
        async with atomic(self._conn, "journal.clear"):
            await self._conn.execute("DELETE FROM journal")

    async def _insert(self, event: Event) -> None:
        await self._conn.execute(
            """
            INSERT INTO journal (id, timestamp, type, payload, checksum)
            VALUES (?, ?, ?, ?, ?)
            """,
            self._event_params(event),
        )

    @staticmethod
    def _event_params(event: Event) -> tuple:
        return (
            event.id,
            event.timestamp,
            event.type,
            json.dumps(event.payload, ensure_ascii=False),
            event.checksum,
        )

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """将数据库行转换为 Event 模型"""
        payload = json.loads(row[3]) if row[3] else {}
        return Event(
            id=row[0],
            timestamp=row[1],
            type=row[2],
            payload=payload,
            checksum=row[4],
        )
