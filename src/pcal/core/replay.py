"""Journal 重放模块

从 journal 重建 daily_entries 表（物化视图），确保事件溯源的一致性。
支持单事件应用（增量写入复用）和全量重建两种模式。

事件分发为 tagged union：每种 EventType 对应一个 payload 模型，
每个 payload 模型对应一个处理函数，两张表在导入时检查完整性。
"""

import time
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from .checksum import verify
from .exceptions import IntegrityViolation
from .models.entry import DailyEntry
from .models.enums import EventType
from .models.event import Event
from .models.payloads import (
    PAYLOAD_MODELS,
    AISummaryGeneratedPayload,
    AISummaryUpdatedPayload,
    EntryDeletedPayload,
    EntryEmailedPayload,
    EntryLockedPayload,
    LineAddedPayload,
    LineDeletedPayload,
    LineUpdatedPayload,
    PdfExportedPayload,
    SignatureSavedPayload,
)
from .store.protocols import EntryStore, LedgerStore

log = structlog.get_logger()

EntryMap = dict[str, DailyEntry]


def _entry_created(entries: EntryMap, payload: DailyEntry) -> None:
    # 同一 id 重复创建时后写入者生效
    entries[payload.id] = payload.model_copy(deep=True)


def _line_added(entries: EntryMap, payload: LineAddedPayload) -> None:
    entry = entries.get(payload.entry_id)
    if entry is None:
        return
    entries[entry.id] = entry.model_copy(update={"lines": [*entry.lines, payload.line]})


def _line_updated(entries: EntryMap, payload: LineUpdatedPayload) -> None:
    entry = entries.get(payload.entry_id)
    if entry is None:
        return
    # null 视为未设置，见 ActivityLineUpdate
    changes = payload.updates.model_dump(exclude_unset=True, exclude_none=True)
    lines = [
        line.model_copy(update=changes) if line.id == payload.line_id else line
        for line in entry.lines
    ]
    entries[entry.id] = entry.model_copy(update={"lines": lines})


def _line_deleted(entries: EntryMap, payload: LineDeletedPayload) -> None:
    entry = entries.get(payload.entry_id)
    if entry is None:
        return
    lines = [line for line in entry.lines if line.id != payload.line_id]
    entries[entry.id] = entry.model_copy(update={"lines": lines})


def _set_fields(entries: EntryMap, entry_id: str, **fields: Any) -> None:
    entry = entries.get(entry_id)
    if entry is None:
        return
    entries[entry_id] = entry.model_copy(update=fields)


def _signature_saved(entries: EntryMap, payload: SignatureSavedPayload) -> None:
    _set_fields(entries, payload.entry_id, signature_base64=payload.signature_base64)


def _ai_summary_generated(entries: EntryMap, payload: AISummaryGeneratedPayload) -> None:
    _set_fields(
        entries,
        payload.entry_id,
        ai_summary=payload.summary,
        ai_summary_provider=payload.provider,
    )


def _ai_summary_updated(entries: EntryMap, payload: AISummaryUpdatedPayload) -> None:
    _set_fields(entries, payload.entry_id, ai_summary=payload.summary)


def _pdf_exported(entries: EntryMap, payload: PdfExportedPayload) -> None:
    # 审计标记，不改变状态
    return


def _entry_locked(entries: EntryMap, payload: EntryLockedPayload) -> None:
    _set_fields(entries, payload.entry_id, is_locked=payload.is_locked)


def _entry_emailed(entries: EntryMap, payload: EntryEmailedPayload) -> None:
    _set_fields(entries, payload.entry_id, emailed_at=payload.emailed_at)


def _entry_deleted(entries: EntryMap, payload: EntryDeletedPayload) -> None:
    entries.pop(payload.entry_id, None)


_HANDLERS: dict[type[BaseModel], Callable[[EntryMap, Any], None]] = {
    DailyEntry: _entry_created,
    LineAddedPayload: _line_added,
    LineUpdatedPayload: _line_updated,
    LineDeletedPayload: _line_deleted,
    SignatureSavedPayload: _signature_saved,
    AISummaryGeneratedPayload: _ai_summary_generated,
    AISummaryUpdatedPayload: _ai_summary_updated,
    PdfExportedPayload: _pdf_exported,
    EntryLockedPayload: _entry_locked,
    EntryEmailedPayload: _entry_emailed,
    EntryDeletedPayload: _entry_deleted,
}

_unhandled = set(PAYLOAD_MODELS.values()) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"payload 模型缺少处理函数: {sorted(m.__name__ for m in _unhandled)}")


class VerifyReport(BaseModel):
    """journal checksum 扫描结果"""

    event_count: int
    first_invalid_event_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.first_invalid_event_id is None


def apply_event(entries: EntryMap, event: Event) -> bool:
    """将单个事件应用到内存中的 entry 映射表（就地修改）

    未知事件类型和无法解析的 payload 记录告警后跳过，不中断重放。
    目标 entry 或活动行不存在时为 no-op。

    Args:
        entries: entry_id -> DailyEntry 的映射表
        event: 要应用的事件

    Returns:
        True 如果事件被识别并应用
    """
    try:
        event_type = EventType(event.type)
    except ValueError:
        log.warning("replay_unknown_event_type", event_id=event.id, event_type=event.type)
        return False

    try:
        payload = PAYLOAD_MODELS[event_type].model_validate(event.payload)
    except ValidationError as e:
        log.warning(
            "replay_malformed_payload",
            event_id=event.id,
            event_type=event.type,
            error=str(e),
        )
        return False

    _HANDLERS[type(payload)](entries, payload)
    return True


def fold_events(events: list[Event]) -> EntryMap:
    """按给定顺序折叠事件，返回新的 entry 映射表"""
    entries: EntryMap = {}
    for event in events:
        apply_event(entries, event)
    return entries


def find_invalid_event(events: list[Event]) -> str | None:
    """返回第一个 checksum 不匹配的事件 id，全部有效时返回 None"""
    for event in events:
        if not verify(event.payload, event.checksum):
            return event.id
    return None


async def verify_ledger(ledger: LedgerStore) -> VerifyReport:
    """只校验 checksum，不写入物化视图"""
    events = await ledger.read_all()
    return VerifyReport(
        event_count=len(events),
        first_invalid_event_id=find_invalid_event(events),
    )


async def replay(ledger: LedgerStore, entries: EntryStore) -> list[DailyEntry]:
    """从 journal 重建 daily_entries 表

    流程：
    1. 读取所有事件（按 timestamp, 写入顺序排序）
    2. 无事件时直接返回空列表，不触碰物化视图
    3. 先校验全部 checksum，任一不匹配立即失败，不写入任何部分状态
    4. 在内存中折叠所有事件
    5. 清空 daily_entries 后整体写入

    Args:
        ledger: Journal 存储
        entries: DailyEntry 物化视图

    Returns:
        重建后的全部 DailyEntry

    Raises:
        IntegrityViolation: 存在 checksum 不匹配的事件
        PersistenceError: 读写本地存储失败
    """
    start_time = time.monotonic()

    events = await ledger.read_all()
    if not events:
        await log.ainfo("replay_skipped", reason="empty_journal")
        return []

    await log.ainfo("replay_started", event_count=len(events))

    invalid_id = find_invalid_event(events)
    if invalid_id is not None:
        await log.aerror("replay_integrity_violation", event_id=invalid_id)
        raise IntegrityViolation(invalid_id)

    folded = fold_events(events)
    result = list(folded.values())

    await entries.replace_all(result)

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "replay_completed",
        event_count=len(events),
        entry_count=len(result),
        elapsed_ms=elapsed_ms,
    )
    return result
