"""备份导出/导入

完整导出 children、daily_entries、goals 与 journal，用于离线备份与迁移。
导入时逐条校验，非法记录跳过并计数；replace 模式先清空四张表，merge 模式只补充缺失记录。
"""

import json
import time
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from .config import EXPORT_APP_NAME, EXPORT_VERSION
from .exceptions import BackupFormatError
from .models.base import WireModel
from .models.entry import DailyEntry
from .models.enums import ImportMode
from .models.event import Event
from .models.reference import Child, Goal
from .store import StoreGroup

log = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


class ExportContent(WireModel):
    """导出文件 data 部分"""

    children: list[Child] = Field(default_factory=list)
    daily_entries: list[DailyEntry] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    journal: list[Event] = Field(default_factory=list)


class ExportData(WireModel):
    """导出文件格式"""

    version: int = EXPORT_VERSION
    exported_at: int
    app_name: str = EXPORT_APP_NAME
    data: ExportContent


class ImportResult(BaseModel):
    """导入统计"""

    mode: ImportMode
    children: int = 0
    entries: int = 0
    goals: int = 0
    journal_events: int = 0
    skipped: int = 0


async def export_all(store_group: StoreGroup) -> ExportData:
    """导出全部本地数据"""
    children = await store_group.children.list_children()
    entries = await store_group.entries.list_entries()
    goals = await store_group.goals.list_goals()
    journal = await store_group.ledger.read_all()

    await log.ainfo(
        "backup_exported",
        children=len(children),
        entries=len(entries),
        goals=len(goals),
        journal_events=len(journal),
    )
    return ExportData(
        exported_at=int(time.time() * 1000),
        data=ExportContent(
            children=children,
            daily_entries=entries,
            goals=goals,
            journal=journal,
        ),
    )


def _parse_envelope(raw: str | bytes | dict[str, Any]) -> dict[str, list]:
    """校验导出文件外层结构，返回 data 部分"""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BackupFormatError("Invalid JSON file") from e

    if not isinstance(raw, dict):
        raise BackupFormatError()
    if not isinstance(raw.get("version"), int) or raw.get("appName") != EXPORT_APP_NAME:
        raise BackupFormatError()

    data = raw.get("data")
    if not isinstance(data, dict):
        raise BackupFormatError()
    for key in ("children", "dailyEntries", "goals", "journal"):
        if not isinstance(data.get(key), list):
            raise BackupFormatError(f"Invalid backup file format: data.{key} missing")
    return data


def _validate_records(model: type[T], records: list) -> tuple[list[T], int]:
    """逐条校验记录，返回 (合法记录, 跳过数)"""
    valid: list[T] = []
    skipped = 0
    for record in records:
        try:
            valid.append(model.model_validate(record))
        except ValidationError:
            skipped += 1
    return valid, skipped


async def import_data(
    store_group: StoreGroup,
    raw: str | bytes | dict[str, Any],
    mode: ImportMode = ImportMode.REPLACE,
) -> ImportResult:
    """导入备份数据

    Args:
        store_group: 本地 Store 实例组
        raw: 导出文件内容（JSON 文本或已解析的字典）
        mode: replace 清空后写入；merge 只写入本地不存在的记录

    Returns:
        ImportResult 导入统计

    Raises:
        BackupFormatError: 文件不是合法的 PCAL 备份
    """
    data = _parse_envelope(raw)

    children, skipped_children = _validate_records(Child, data["children"])
    entries, skipped_entries = _validate_records(DailyEntry, data["dailyEntries"])
    goals, skipped_goals = _validate_records(Goal, data["goals"])
    journal, skipped_journal = _validate_records(Event, data["journal"])
    skipped = skipped_children + skipped_entries + skipped_goals + skipped_journal

    if skipped:
        await log.awarning("backup_import_skipped_invalid_records", skipped=skipped)

    if mode == ImportMode.REPLACE:
        await store_group.ledger.clear()
        await store_group.entries.clear()
        await store_group.children.clear()
        await store_group.goals.clear()
    else:
        existing_children = {c.id for c in await store_group.children.list_children()}
        existing_entries = {e.id for e in await store_group.entries.list_entries()}
        existing_goals = {g.code for g in await store_group.goals.list_goals()}
        children = [c for c in children if c.id not in existing_children]
        entries = [e for e in entries if e.id not in existing_entries]
        goals = [g for g in goals if g.code not in existing_goals]

    if children:
        await store_group.children.put_many(children)
    if entries:
        await store_group.entries.put_many(entries)
    if goals:
        await store_group.goals.put_many(goals)
    journal_count = await store_group.ledger.import_events(journal, skip_existing=True)

    result = ImportResult(
        mode=mode,
        children=len(children),
        entries=len(entries),
        goals=len(goals),
        journal_events=journal_count,
        skipped=skipped,
    )
    await log.ainfo("backup_imported", **result.model_dump(mode="json"))
    return result
