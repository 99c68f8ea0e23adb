"""JournalService 测试 -- 先 journal 后物化视图"""

from unittest.mock import AsyncMock

import pytest
from pcal.core.exceptions import EntryLockedError, EntryNotFoundError, PersistenceError
from pcal.core.journal import JournalService
from pcal.core.models.entry import ActivityLineUpdate, DailyEntry
from pcal.core.models.enums import EventType


@pytest.fixture
def journal(store_group) -> JournalService:
    return JournalService(store_group)


class TestWrites:
    """写操作同时追加事件并更新缓存"""

    async def test_create_entry_appends_snapshot(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")

        events = await store_group.ledger.read_all()
        assert [e.type for e in events] == [EventType.ENTRY_CREATED]
        assert events[0].payload["id"] == entry.id
        assert await store_group.entries.get(entry.id) == entry

    async def test_add_line_fills_time_fields(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")
        line = await journal.add_line(
            entry.id,
            goal_code=4,
            start_time="13:00",
            duration_minutes=40,
            selected_activities=["唱歌"],
        )

        assert line.end_time == "13:40"
        stored = await store_group.entries.get(entry.id)
        assert stored.lines == [line]

    async def test_update_line_accepts_model_or_dict(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")
        line = await journal.add_line(entry.id, goal_code=1, start_time="09:00")

        await journal.update_line(entry.id, line.id, ActivityLineUpdate(duration_minutes=10))
        updated = await journal.update_line(entry.id, line.id, {"endTime": "09:10"})

        assert updated.lines[0].duration_minutes == 10
        assert updated.lines[0].end_time == "09:10"
        assert updated.lines[0].goal_code == 1

    async def test_mark_emailed_skips_missing(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")

        updated = await journal.mark_entries_emailed([entry.id, "missing"], emailed_at=7)

        assert [e.id for e in updated] == [entry.id]
        assert (await store_group.entries.get(entry.id)).emailed_at == 7
        assert await store_group.ledger.count() == 2

    async def test_pdf_export_is_audit_only(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")
        event = await journal.record_pdf_export([entry.id], filename="a.pdf")

        assert event.type == EventType.PDF_EXPORTED
        assert event.payload == {"entryIds": [entry.id], "filename": "a.pdf"}
        assert await store_group.entries.get(entry.id) == entry

    async def test_delete_entry(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")
        await journal.delete_entry(entry.id)

        assert await store_group.entries.get(entry.id) is None
        deleted = await store_group.ledger.read_by_type(EventType.ENTRY_DELETED)
        assert deleted[0].payload == {"entryId": entry.id}

    async def test_restore_snapshot_overwrites(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")
        remote = entry.model_copy(update={"ai_summary": "云端"})

        await journal.restore_entry_snapshot(remote)

        assert await store_group.entries.get(entry.id) == remote


class TestPreconditions:
    """前置条件失败时不追加事件"""

    async def test_unknown_entry(self, journal, store_group):
        with pytest.raises(EntryNotFoundError):
            await journal.add_line("missing", goal_code=1, start_time="09:00")
        with pytest.raises(EntryNotFoundError):
            await journal.delete_entry("missing")
        assert await store_group.ledger.count() == 0

    async def test_locked_entry_rejects_mutations(self, journal, store_group):
        entry = await journal.create_entry("2024-05-01", "c1")
        await journal.lock_entry(entry.id)
        count = await store_group.ledger.count()

        with pytest.raises(EntryLockedError):
            await journal.save_signature(entry.id, "SIG")
        with pytest.raises(EntryLockedError):
            await journal.add_line(entry.id, goal_code=1, start_time="09:00")
        assert await store_group.ledger.count() == count

        unlocked = await journal.lock_entry(entry.id, locked=False)
        assert not unlocked.is_locked
        signed = await journal.save_signature(entry.id, "SIG")
        assert signed.signature_base64 == "SIG"


class TestJournalFirst:
    """append 失败时物化视图不被触碰"""

    async def test_append_failure_leaves_cache(self, store_group):
        entry = DailyEntry(id="e1", date="2024-05-01", child_id="c1")
        await store_group.entries.put(entry)
        store_group.ledger.append = AsyncMock(
            side_effect=PersistenceError("journal.append", RuntimeError("disk full"))
        )
        journal = JournalService(store_group)

        with pytest.raises(PersistenceError):
            await journal.save_signature("e1", "SIG")

        assert await store_group.entries.get("e1") == entry
