"""PCAL Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .base import WireModel
from .entry import ActivityLine, ActivityLineUpdate, DailyEntry, calculate_time_fields
from .enums import AIProvider, EventType, ImportMode, RecoveryAction
from .event import Event
from .payloads import (
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
    payload_type_for,
)
from .reference import Child, Goal
from .sync import PullResult, SyncData

__all__ = [
    # 枚举
    "EventType",
    "AIProvider",
    "RecoveryAction",
    "ImportMode",
    # 基类
    "WireModel",
    # DailyEntry
    "DailyEntry",
    "ActivityLine",
    "ActivityLineUpdate",
    "calculate_time_fields",
    # 参考实体
    "Child",
    "Goal",
    # Event
    "Event",
    # Payloads
    "PAYLOAD_MODELS",
    "payload_type_for",
    "LineAddedPayload",
    "LineUpdatedPayload",
    "LineDeletedPayload",
    "SignatureSavedPayload",
    "AISummaryGeneratedPayload",
    "AISummaryUpdatedPayload",
    "PdfExportedPayload",
    "EntryLockedPayload",
    "EntryEmailedPayload",
    "EntryDeletedPayload",
    # Sync
    "SyncData",
    "PullResult",
]
