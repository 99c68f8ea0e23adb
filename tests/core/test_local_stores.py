"""物化表存储测试 -- daily_entries / children / goals"""

import pytest
from pcal.core.exceptions import PersistenceError
from pcal.core.models.entry import ActivityLine, DailyEntry
from pcal.core.models.reference import Child, Goal
from pcal.core.store.transaction import atomic


def _entry(entry_id: str, date: str = "2026-03-01", child_id: str = "c1") -> DailyEntry:
    return DailyEntry(
        id=entry_id,
        date=date,
        child_id=child_id,
        lines=[
            ActivityLine(
                id="l1",
                goal_code=3,
                selected_activities=["拼图"],
                start_time="09:00",
                end_time="09:30",
                duration_minutes=30,
            )
        ],
    )


class TestEntryStore:
    """SqliteEntryStore"""

    async def test_put_and_get_roundtrip(self, store_group):
        entry = _entry("e1").model_copy(update={"is_locked": True, "emailed_at": 99})
        await store_group.entries.put(entry)

        assert await store_group.entries.get("e1") == entry
        assert await store_group.entries.get("missing") is None

    async def test_list_filters_and_orders_by_date_desc(self, store_group):
        await store_group.entries.put_many(
            [
                _entry("e1", date="2026-03-01"),
                _entry("e2", date="2026-03-02"),
                _entry("e3", date="2026-03-03", child_id="c2"),
            ]
        )

        assert [e.id for e in await store_group.entries.list_entries()] == ["e3", "e2", "e1"]
        assert [e.id for e in await store_group.entries.list_entries("c1")] == ["e2", "e1"]

    async def test_replace_all_drops_previous_rows(self, store_group):
        await store_group.entries.put_many([_entry("e1"), _entry("e2")])
        await store_group.entries.replace_all([_entry("e3")])

        assert await store_group.entries.count() == 1
        assert await store_group.entries.get("e1") is None

    async def test_delete(self, store_group):
        await store_group.entries.put(_entry("e1"))
        await store_group.entries.delete("e1")
        assert await store_group.entries.count() == 0


class TestReferenceStores:
    """SqliteChildStore / SqliteGoalStore"""

    async def test_children_upsert_keeps_insert_order(self, store_group):
        await store_group.children.put_many(
            [Child(id="c2", name="Bo"), Child(id="c1", name="Al")]
        )
        await store_group.children.put(Child(id="c2", name="Bob", center="North"))

        children = await store_group.children.list_children()
        assert [c.id for c in children] == ["c2", "c1"]
        assert children[0].name == "Bob"
        assert children[0].center == "North"

    async def test_goals_ordered_by_code(self, store_group):
        await store_group.goals.put_many(
            [
                Goal(code=2, description="D2", activities=["a"]),
                Goal(code=1, description="D1"),
            ]
        )
        goals = await store_group.goals.list_goals()

        assert [g.code for g in goals] == [1, 2]
        assert goals[1].activities == ["a"]
        assert await store_group.goals.get(2) == Goal(code=2, description="D2", activities=["a"])

    async def test_clear_and_delete(self, store_group):
        await store_group.children.put(Child(id="c1", name="Al"))
        await store_group.goals.put(Goal(code=1, description="D1"))

        await store_group.children.delete("c1")
        await store_group.goals.clear()

        assert await store_group.children.count() == 0
        assert await store_group.goals.count() == 0


class TestStorageErrors:
    """SQLite 拒绝写入时包装为 PersistenceError 并回滚"""

    async def test_out_of_range_goal_code(self, store_group):
        with pytest.raises(PersistenceError) as exc_info:
            await store_group.goals.put_many(
                [Goal(code=1, description="D1"), Goal(code=2**64, description="big")]
            )

        assert isinstance(exc_info.value.original_error, OverflowError)
        assert await store_group.goals.count() == 0

    async def test_non_storage_error_rolls_back(self, store_group):
        await store_group.entries.put(_entry("e1"))

        with pytest.raises(RuntimeError):
            async with atomic(store_group.conn, "daily_entries.test"):
                await store_group.conn.execute("DELETE FROM daily_entries")
                raise RuntimeError("boom")

        await store_group.children.put(Child(id="c1", name="Al"))
        assert await store_group.entries.count() == 1
