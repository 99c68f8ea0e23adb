"""Event Domain Model

journal 表 append-only，不允许更新或删除。
id 使用 ULID 格式；排序键为 (timestamp, 写入顺序)。
"""

from typing import Any

from pydantic import BaseModel, Field


class Event(BaseModel):
    """Journal 事件 -- 线格式 {id, timestamp, type, payload, checksum}

    type 以文本保存：新版本写入的未知类型可以被读取并在重放时跳过。
    """

    id: str = Field(description="唯一标识，ULID 格式")
    timestamp: int = Field(description="事件时间戳（epoch ms），同一 journal 内单调不减")
    type: str = Field(description="事件类型，见 EventType")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
    checksum: str = Field(description="payload 的 SHA-256 指纹")
