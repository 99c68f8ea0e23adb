"""Event Payload 子类型

每种 EventType 对应一个 payload 模型（tagged union）。
PAYLOAD_MODELS 在导入时检查是否覆盖全部 EventType。
"""

from pydantic import BaseModel, Field

from .base import WireModel
from .entry import ActivityLine, ActivityLineUpdate, DailyEntry
from .enums import EventType


class LineAddedPayload(WireModel):
    """LINE_ADDED 事件 payload"""

    entry_id: str
    line: ActivityLine


class LineUpdatedPayload(WireModel):
    """LINE_UPDATED 事件 payload"""

    entry_id: str
    line_id: str
    updates: ActivityLineUpdate


class LineDeletedPayload(WireModel):
    """LINE_DELETED 事件 payload"""

    entry_id: str
    line_id: str


class SignatureSavedPayload(WireModel):
    """SIGNATURE_SAVED 事件 payload"""

    entry_id: str
    signature_base64: str


class AISummaryGeneratedPayload(WireModel):
    """AI_SUMMARY_GENERATED 事件 payload"""

    entry_id: str
    summary: str
    provider: str | None = None


class AISummaryUpdatedPayload(WireModel):
    """AI_SUMMARY_UPDATED 事件 payload（用户手动编辑摘要）"""

    entry_id: str
    summary: str


class PdfExportedPayload(WireModel):
    """PDF_EXPORTED 事件 payload -- 仅审计，不改变状态"""

    entry_ids: list[str] = Field(default_factory=list)
    filename: str = Field(default="")


class EntryLockedPayload(WireModel):
    """ENTRY_LOCKED 事件 payload"""

    entry_id: str
    is_locked: bool = True


class EntryEmailedPayload(WireModel):
    """ENTRY_EMAILED 事件 payload"""

    entry_id: str
    emailed_at: int


class EntryDeletedPayload(WireModel):
    """ENTRY_DELETED 事件 payload -- 本地删除的墓碑"""

    entry_id: str


PAYLOAD_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.ENTRY_CREATED: DailyEntry,
    EventType.LINE_ADDED: LineAddedPayload,
    EventType.LINE_UPDATED: LineUpdatedPayload,
    EventType.LINE_DELETED: LineDeletedPayload,
    EventType.SIGNATURE_SAVED: SignatureSavedPayload,
    EventType.AI_SUMMARY_GENERATED: AISummaryGeneratedPayload,
    EventType.AI_SUMMARY_UPDATED: AISummaryUpdatedPayload,
    EventType.PDF_EXPORTED: PdfExportedPayload,
    EventType.ENTRY_LOCKED: EntryLockedPayload,
    EventType.ENTRY_EMAILED: EntryEmailedPayload,
    EventType.ENTRY_DELETED: EntryDeletedPayload,
}

_missing = set(EventType) - set(PAYLOAD_MODELS)
if _missing:
    raise RuntimeError(f"EventType 缺少 payload 模型: {sorted(_missing)}")


def payload_type_for(model: BaseModel) -> EventType:
    """根据 payload 模型实例反查 EventType"""
    for event_type, model_cls in PAYLOAD_MODELS.items():
        if type(model) is model_cls:
            return event_type
    raise TypeError(f"未知 payload 模型: {type(model).__name__}")
