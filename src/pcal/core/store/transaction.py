"""事务封装 -- 单次存储调用的原子提交

每个写操作在同一连接上执行并提交；任何异常都先回滚，
SQLite 拒绝的写入（含超出 INTEGER 范围的参数）包装为 PersistenceError。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from ..exceptions import PersistenceError

# sqlite3 绑定参数时对超出 64 位范围的 int 抛 OverflowError，而非 sqlite3.Error
STORAGE_ERRORS = (aiosqlite.Error, OverflowError)


@asynccontextmanager
async def atomic(conn: aiosqlite.Connection, operation: str) -> AsyncIterator[None]:
    """写事务：成功时提交，任何异常都回滚

    共享连接上未回滚的语句会被下一次 commit 一并提交，所以非数据库异常也必须回滚。

    Raises:
        PersistenceError: 底层 SQLite 拒绝写入
    """
    try:
        yield
        await conn.commit()
    except STORAGE_ERRORS as e:
        await conn.rollback()
        raise PersistenceError(operation, e) from e
    except Exception:
        await conn.rollback()
        raise


@asynccontextmanager
async def reading(operation: str) -> AsyncIterator[None]:
    """读操作：数据库异常包装为 PersistenceError"""
    try:
        yield
    except STORAGE_ERRORS as e:
        raise PersistenceError(operation, e) from e
