"""枚举定义

包含 EventType（journal 事件类型的封闭集合）、AIProvider、RecoveryAction、ImportMode。
"""

from enum import StrEnum


class EventType(StrEnum):
    """Journal 事件类型"""

    ENTRY_CREATED = "ENTRY_CREATED"
    LINE_ADDED = "LINE_ADDED"
    LINE_UPDATED = "LINE_UPDATED"
    LINE_DELETED = "LINE_DELETED"
    SIGNATURE_SAVED = "SIGNATURE_SAVED"
    AI_SUMMARY_GENERATED = "AI_SUMMARY_GENERATED"
    AI_SUMMARY_UPDATED = "AI_SUMMARY_UPDATED"
    PDF_EXPORTED = "PDF_EXPORTED"
    ENTRY_LOCKED = "ENTRY_LOCKED"
    ENTRY_EMAILED = "ENTRY_EMAILED"
    ENTRY_DELETED = "ENTRY_DELETED"


class AIProvider(StrEnum):
    """AI 摘要来源"""

    TRANSFORMERS_LOCAL = "transformers-local"
    OPENAI_API = "openai-api"
    FALLBACK = "fallback"


class RecoveryAction(StrEnum):
    """启动时恢复策略的决策结果"""

    NONE_FRESH = "none_fresh"
    REPLAYED = "replayed"
    NONE_HEALTHY = "none_healthy"
    NONE_ANOMALY = "none_anomaly"


class ImportMode(StrEnum):
    """备份导入模式"""

    REPLACE = "replace"
    MERGE = "merge"
