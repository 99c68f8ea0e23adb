"""Child / Goal 物化表 SQLite 实现

参考实体不经过 journal，直接读写。
"""

import json

import aiosqlite

from ..models.reference import Child, Goal
from .transaction import atomic, reading

_CHILD_UPSERT_SQL = """
INSERT INTO children (id, name, center, teacher)
VALUES (?, ?, ?, ?)
ON CONFLICT (id) DO UPDATE SET
    name = excluded.name,
    center = excluded.center,
    teacher = excluded.teacher
"""

_GOAL_UPSERT_SQL = """
INSERT INTO goals (code, description, activities)
VALUES (?, ?, ?)
ON CONFLICT (code) DO UPDATE SET
    description = excluded.description,
    activities = excluded.activities
"""


class SqliteChildStore:
    """Child 表的 SQLite 实现，列表按创建顺序返回"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get(self, child_id: str) -> Child | None:
        async with reading("children.get"):
            cursor = await self._conn.execute(
                "SELECT id, name, center, teacher FROM children WHERE id = ?",
                (child_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return Child(id=row[0], name=row[1], center=row[2], teacher=row[3])

    async def list_children(self) -> list[Child]:
        async with reading("children.list"):
            cursor = await self._conn.execute(
                "SELECT id, name, center, teacher FROM children ORDER BY rowid ASC"
            )
            rows = await cursor.fetchall()
        return [Child(id=r[0], name=r[1], center=r[2], teacher=r[3]) for r in rows]

    async def count(self) -> int:
        async with reading("children.count"):
            cursor = await self._conn.execute("SELECT COUNT(*) FROM children")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def put(self, child: Child) -> None:
        await self.put_many([child])

    async def put_many(self, children: list[Child]) -> None:
        """批量写入或更新（同 id 覆盖字段，保留原创建顺序）"""
        async with atomic(self._conn, "children.put_many"):
            await self._conn.executemany(
                _CHILD_UPSERT_SQL,
                [(c.id, c.name, c.center, c.teacher) for c in children],
            )

    async def delete(self, child_id: str) -> None:
        async with atomic(self._conn, "children.delete"):
            await self._conn.execute("DELETE FROM children WHERE id = ?", (child_id,))

    async def clear(self) -> None:
        async with atomic(self._conn, "children.clear"):
            await self._conn.execute("DELETE FROM children")


class SqliteGoalStore:
    """Goal 表的 SQLite 实现，列表按 code 升序返回"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get(self, code: int) -> Goal | None:
        async with reading("goals.get"):
            cursor = await self._conn.execute(
                "SELECT code, description, activities FROM goals WHERE code = ?",
                (code,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_goal(row)

    async def list_goals(self) -> list[Goal]:
        async with reading("goals.list"):
            cursor = await self._conn.execute(
                "SELECT code, description, activities FROM goals ORDER BY code ASC"
            )
            rows = await cursor.fetchall()
        return [self._row_to_goal(row) for row in rows]

    async def count(self) -> int:
        async with reading("goals.count"):
            cursor = await self._conn.execute("SELECT COUNT(*) FROM goals")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def put(self, goal: Goal) -> None:
        await self.put_many([goal])

    async def put_many(self, goals: list[Goal]) -> None:
        async with atomic(self._conn, "goals.put_many"):
            await self._conn.executemany(
                _GOAL_UPSERT_SQL,
                [
                    (g.code, g.description, json.dumps(g.activities, ensure_ascii=False))
                    for g in goals
                ],
            )

    async def delete(self, code: int) -> None:
        async with atomic(self._conn, "goals.delete"):
            await self._conn.execute("DELETE FROM goals WHERE code = ?", (code,))

    async def clear(self) -> None:
        async with atomic(self._conn, "goals.clear"):
            await self._conn.execute("DELETE FROM goals")

    @staticmethod
    def _row_to_goal(row: aiosqlite.Row) -> Goal:
        activities = json.loads(row[2]) if row[2] else []
        return Goal(code=row[0], description=row[1], activities=activities)
