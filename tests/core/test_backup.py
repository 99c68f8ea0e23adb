"""备份导出/导入测试"""

import json

import pytest
from pcal.core.backup import export_all, import_data
from pcal.core.exceptions import BackupFormatError
from pcal.core.journal import JournalService
from pcal.core.models.enums import ImportMode
from pcal.core.models.reference import Child, Goal
from pcal.core.replay import replay
from pcal.core.store import create_store_group


async def _seed(store_group) -> str:
    await store_group.children.put(Child(id="c1", name="Al", center="East"))
    await store_group.goals.put(Goal(code=1, description="D", activities=["A"]))
    journal = JournalService(store_group)
    entry = await journal.create_entry("2024-05-01", "c1")
    await journal.add_line(entry.id, goal_code=1, start_time="09:00", duration_minutes=30)
    return entry.id


class TestExport:
    async def test_export_envelope(self, store_group):
        entry_id = await _seed(store_group)

        export = await export_all(store_group)
        wire = json.loads(export.model_dump_json(by_alias=True))

        assert wire["version"] == 1
        assert wire["appName"] == "PCAL"
        assert isinstance(wire["exportedAt"], int)
        assert [e["id"] for e in wire["data"]["dailyEntries"]] == [entry_id]
        assert len(wire["data"]["journal"]) == 2
        assert wire["data"]["children"][0]["center"] == "East"


class TestImport:
    """replace / merge 导入"""

    async def test_replace_into_fresh_database(self, store_group, tmp_path):
        await _seed(store_group)
        raw = (await export_all(store_group)).model_dump_json(by_alias=True)

        target = await create_store_group(str(tmp_path / "restored.db"))
        try:
            result = await import_data(target, raw, ImportMode.REPLACE)

            assert (result.children, result.entries, result.goals) == (1, 1, 1)
            assert result.journal_events == 2
            assert result.skipped == 0

            # 导入的 journal 可以完整重放出同样的状态
            before = [e.model_dump() for e in await target.entries.list_entries()]
            await replay(target.ledger, target.entries)
            after = [e.model_dump() for e in await target.entries.list_entries()]
            assert before == after
        finally:
            await target.close()

    async def test_replace_clears_existing(self, store_group):
        await store_group.children.put(Child(id="old", name="Old"))
        raw = {
            "version": 1,
            "exportedAt": 0,
            "appName": "PCAL",
            "data": {"children": [], "dailyEntries": [], "goals": [], "journal": []},
        }

        await import_data(store_group, raw, ImportMode.REPLACE)

        assert await store_group.children.count() == 0

    async def test_merge_only_adds_missing(self, store_group):
        await _seed(store_group)
        export = await export_all(store_group)
        raw = json.loads(export.model_dump_json(by_alias=True))
        raw["data"]["children"][0]["name"] = "Renamed"
        raw["data"]["children"].append({"id": "c2", "name": "Bo"})

        result = await import_data(store_group, raw, ImportMode.MERGE)

        assert result.children == 1
        assert result.entries == 0
        assert result.journal_events == 0
        assert (await store_group.children.get("c1")).name == "Al"
        assert (await store_group.children.get("c2")).name == "Bo"

    async def test_invalid_records_skipped(self, store_group):
        raw = {
            "version": 1,
            "exportedAt": 0,
            "appName": "PCAL",
            "data": {
                "children": [{"id": "c1", "name": "Al"}, {"name": "no id"}],
                "dailyEntries": [{"id": "e1"}],
                "goals": [{"code": "x"}],
                "journal": [],
            },
        }

        result = await import_data(store_group, raw)

        assert result.children == 1
        assert result.skipped == 3

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            json.dumps({"version": 1, "appName": "OTHER", "data": {}}),
            json.dumps({"version": "1", "appName": "PCAL", "data": {}}),
            json.dumps({"version": 1, "appName": "PCAL", "data": {"children": []}}),
        ],
    )
    async def test_bad_envelope_rejected(self, store_group, raw):
        await store_group.children.put(Child(id="keep", name="K"))

        with pytest.raises(BackupFormatError):
            await import_data(store_group, raw)
        assert await store_group.children.count() == 1
