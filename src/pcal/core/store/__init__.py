"""PCAL Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from collections.abc import Callable
from pathlib import Path

import aiosqlite

from .entry_store import SqliteEntryStore
from .ledger_store import SqliteLedgerStore
from .reference_store import SqliteChildStore, SqliteGoalStore
from .sqlite_init import init_db


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接

    同一个本地数据库只允许一个写入者（单会话独占）。
    """

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.conn = conn
        self.ledger = SqliteLedgerStore(conn, clock=clock)
        self.entries = SqliteEntryStore(conn)
        self.children = SqliteChildStore(conn)
        self.goals = SqliteGoalStore(conn)

    async def close(self) -> None:
        await self.conn.close()


async def create_store_group(
    db_path: str,
    clock: Callable[[], int] | None = None,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        clock: 可选的 journal 时钟（epoch ms），测试时注入

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, clock=clock)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteLedgerStore",
    "SqliteEntryStore",
    "SqliteChildStore",
    "SqliteGoalStore",
    "init_db",
]
