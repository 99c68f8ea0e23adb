"""Journal 存储测试

1. append 分配 id / timestamp / checksum
2. timestamp 单调不减（时钟回拨时取上一条）
3. read_all 按 (timestamp, 写入顺序) 排序
4. 序列化失败时不写入
5. import_events / clear
"""

import pytest
from pcal.core.checksum import checksum
from pcal.core.exceptions import SerializationError
from pcal.core.models.enums import EventType
from pcal.core.models.event import Event
from pcal.core.store import create_store_group


class TestAppend:
    """append 测试"""

    async def test_append_assigns_fields(self, store_group):
        payload = {"entryId": "e1", "summary": "hi"}
        event = await store_group.ledger.append(EventType.AI_SUMMARY_UPDATED, payload)

        assert len(event.id) == 26  # ULID
        assert event.type == "AI_SUMMARY_UPDATED"
        assert event.payload == payload
        assert event.checksum == checksum(payload)
        assert await store_group.ledger.count() == 1

    async def test_timestamp_never_decreases(self, tmp_path):
        """时钟回拨时 timestamp 取上一条事件的值"""
        readings = iter([5_000, 3_000, 7_000])
        sg = await create_store_group(str(tmp_path / "clock.db"), clock=lambda: next(readings))
        try:
            e1 = await sg.ledger.append(EventType.PDF_EXPORTED, {"n": 1})
            e2 = await sg.ledger.append(EventType.PDF_EXPORTED, {"n": 2})
            e3 = await sg.ledger.append(EventType.PDF_EXPORTED, {"n": 3})
        finally:
            await sg.close()

        assert [e1.timestamp, e2.timestamp, e3.timestamp] == [5_000, 5_000, 7_000]

    async def test_same_timestamp_keeps_append_order(self, tmp_path):
        sg = await create_store_group(str(tmp_path / "same.db"), clock=lambda: 1_000)
        try:
            ids = [
                (await sg.ledger.append(EventType.PDF_EXPORTED, {"n": n})).id
                for n in range(5)
            ]
            events = await sg.ledger.read_all()
        finally:
            await sg.close()

        assert [e.id for e in events] == ids

    async def test_serialization_error_writes_nothing(self, store_group):
        with pytest.raises(SerializationError):
            await store_group.ledger.append(EventType.PDF_EXPORTED, {"bad": {1, 2}})
        assert await store_group.ledger.count() == 0

    async def test_lone_surrogate_is_serialization_error(self, store_group):
        with pytest.raises(SerializationError):
            await store_group.ledger.append(EventType.PDF_EXPORTED, {"filename": "\ud800"})
        assert await store_group.ledger.count() == 0

    async def test_read_all_is_restartable(self, store_group):
        await store_group.ledger.append(EventType.PDF_EXPORTED, {"n": 1})
        first = await store_group.ledger.read_all()
        second = await store_group.ledger.read_all()
        assert first == second


class TestReadByType:
    async def test_filters_by_type(self, store_group):
        await store_group.ledger.append(EventType.PDF_EXPORTED, {"n": 1})
        await store_group.ledger.append(EventType.ENTRY_DELETED, {"entryId": "e1"})
        await store_group.ledger.append(EventType.ENTRY_DELETED, {"entryId": "e2"})

        deleted = await store_group.ledger.read_by_type(EventType.ENTRY_DELETED)
        assert [e.payload["entryId"] for e in deleted] == ["e1", "e2"]


class TestImportEvents:
    """备份恢复写入"""

    async def test_import_preserves_fields_and_skips_existing(self, store_group):
        payload = {"entryId": "e1"}
        event = Event(
            id="01HZZZZZZZZZZZZZZZZZZZZZZZ",
            timestamp=42,
            type=EventType.ENTRY_DELETED.value,
            payload=payload,
            checksum=checksum(payload),
        )

        assert await store_group.ledger.import_events([event]) == 1
        assert await store_group.ledger.import_events([event]) == 0

        events = await store_group.ledger.read_all()
        assert events == [event]

    async def test_clear(self, store_group):
        await store_group.ledger.append(EventType.PDF_EXPORTED, {})
        await store_group.ledger.clear()
        assert await store_group.ledger.count() == 0
