"""JournalService -- DailyEntry 写操作

每个写操作遵循「先 journal，后物化视图」：
1. 校验前置条件（entry 存在、未锁定）
2. 追加事件到 journal（失败时物化视图不被触碰）
3. 用与重放相同的 apply_event 把事件折叠进缓存中的 entry 并写回

两步之间崩溃会让 journal 领先于物化视图，由恢复策略检测并重放修复。
"""

import time
from typing import Any

import structlog
from ulid import ULID

from .exceptions import EntryLockedError, EntryNotFoundError
from .models.base import WireModel
from .models.entry import ActivityLine, ActivityLineUpdate, DailyEntry, calculate_time_fields
from .models.event import Event
from .models.payloads import (
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
    payload_type_for,
)
from .replay import apply_event
from .store import StoreGroup

log = structlog.get_logger()


class JournalService:
    """DailyEntry 写操作服务 -- journal 优先"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._ledger = store_group.ledger
        self._entries = store_group.entries

    async def create_entry(
        self,
        date: str,
        child_id: str,
        entry_id: str | None = None,
    ) -> DailyEntry:
        """创建新的 DailyEntry（ENTRY_CREATED）"""
        entry = DailyEntry(id=entry_id or str(ULID()), date=date, child_id=child_id)
        return await self._commit(entry, entry.id, current=None)

    async def restore_entry_snapshot(self, entry: DailyEntry) -> DailyEntry:
        """以完整快照覆盖 entry（ENTRY_CREATED，后写入者生效）

        用于从云端拉取的数据写回本地，保证之后重放能得到相同状态。
        """
        current = await self._entries.get(entry.id)
        return await self._commit(entry, entry.id, current=current)

    async def add_line(
        self,
        entry_id: str,
        goal_code: int,
        start_time: str,
        end_time: str | None = None,
        duration_minutes: int | None = None,
        selected_activities: list[str] | None = None,
        custom_narrative: str = "",
    ) -> ActivityLine:
        """添加活动行（LINE_ADDED），结束时间与时长缺一时自动补全"""
        entry = await self._require_unlocked(entry_id)
        start, end, duration = calculate_time_fields(start_time, end_time, duration_minutes)
        line = ActivityLine(
            id=str(ULID()),
            goal_code=goal_code,
            selected_activities=selected_activities or [],
            custom_narrative=custom_narrative,
            start_time=start,
            end_time=end,
            duration_minutes=duration,
        )
        await self._commit(LineAddedPayload(entry_id=entry_id, line=line), entry_id, entry)
        return line

    async def update_line(
        self,
        entry_id: str,
        line_id: str,
        updates: ActivityLineUpdate | dict[str, Any],
    ) -> DailyEntry:
        """部分更新活动行（LINE_UPDATED）；活动行不存在时事件照常记录，状态不变"""
        entry = await self._require_unlocked(entry_id)
        if isinstance(updates, dict):
            updates = ActivityLineUpdate.model_validate(updates)
        payload = LineUpdatedPayload(entry_id=entry_id, line_id=line_id, updates=updates)
        return await self._commit(payload, entry_id, entry)

    async def delete_line(self, entry_id: str, line_id: str) -> DailyEntry:
        """删除活动行（LINE_DELETED）"""
        entry = await self._require_unlocked(entry_id)
        payload = LineDeletedPayload(entry_id=entry_id, line_id=line_id)
        return await self._commit(payload, entry_id, entry)

    async def save_signature(self, entry_id: str, signature_base64: str) -> DailyEntry:
        """保存家长签名（SIGNATURE_SAVED）"""
        entry = await self._require_unlocked(entry_id)
        payload = SignatureSavedPayload(entry_id=entry_id, signature_base64=signature_base64)
        return await self._commit(payload, entry_id, entry)

    async def record_ai_summary(
        self,
        entry_id: str,
        summary: str,
        provider: str | None = None,
    ) -> DailyEntry:
        """记录 AI 生成的摘要及来源（AI_SUMMARY_GENERATED）

        provider 通常取 AIProvider 的值，也接受任意文本。
        """
        entry = await self._require_unlocked(entry_id)
        payload = AISummaryGeneratedPayload(
            entry_id=entry_id,
            summary=summary,
            provider=provider,
        )
        return await self._commit(payload, entry_id, entry)

    async def update_ai_summary(self, entry_id: str, summary: str) -> DailyEntry:
        """手动编辑摘要（AI_SUMMARY_UPDATED），来源保持不变"""
        entry = await self._require_unlocked(entry_id)
        payload = AISummaryUpdatedPayload(entry_id=entry_id, summary=summary)
        return await self._commit(payload, entry_id, entry)

    async def lock_entry(self, entry_id: str, locked: bool = True) -> DailyEntry:
        """锁定或解锁 entry（ENTRY_LOCKED）"""
        entry = await self._require(entry_id)
        payload = EntryLockedPayload(entry_id=entry_id, is_locked=locked)
        return await self._commit(payload, entry_id, entry)

    async def mark_entries_emailed(
        self,
        entry_ids: list[str],
        emailed_at: int | None = None,
    ) -> list[DailyEntry]:
        """标记 entry 已通过邮件发送（ENTRY_EMAILED），不存在的 id 跳过"""
        timestamp = emailed_at if emailed_at is not None else int(time.time() * 1000)
        updated: list[DailyEntry] = []
        for entry_id in entry_ids:
            entry = await self._entries.get(entry_id)
            if entry is None:
                await log.awarning("mark_emailed_entry_missing", entry_id=entry_id)
                continue
            payload = EntryEmailedPayload(entry_id=entry_id, emailed_at=timestamp)
            updated.append(await self._commit(payload, entry_id, entry))
        return updated

    async def record_pdf_export(self, entry_ids: list[str], filename: str = "") -> Event:
        """记录 PDF 导出（PDF_EXPORTED），仅审计不改变状态"""
        payload = PdfExportedPayload(entry_ids=entry_ids, filename=filename)
        return await self._ledger.append(payload_type_for(payload), payload.to_wire())

    async def delete_entry(self, entry_id: str) -> None:
        """删除 entry（ENTRY_DELETED）；push 时云端对应行被软删除"""
        entry = await self._require(entry_id)
        await self._commit(EntryDeletedPayload(entry_id=entry_id), entry_id, entry)

    async def _require(self, entry_id: str) -> DailyEntry:
        entry = await self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def _require_unlocked(self, entry_id: str) -> DailyEntry:
        entry = await self._require(entry_id)
        if entry.is_locked:
            raise EntryLockedError(entry_id)
        return entry

    async def _commit(
        self,
        payload: WireModel,
        entry_id: str,
        current: DailyEntry | None,
    ) -> DailyEntry | None:
        """追加事件后把同一事件折叠进缓存 entry 并写回物化视图"""
        # journal 优先：append 失败时直接抛出，物化视图保持原样
        event = await self._ledger.append(payload_type_for(payload), payload.to_wire())

        state = {current.id: current} if current is not None else {}
        apply_event(state, event)
        updated = state.get(entry_id)

        if updated is None:
            await self._entries.delete(entry_id)
        else:
            await self._entries.put(updated)

        await log.ainfo(
            "journal_entry_committed",
            event_id=event.id,
            event_type=event.type,
            entry_id=entry_id,
        )
        return updated
