"""Store Protocol 接口定义

定义 LedgerStore、EntryStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
重放与恢复只依赖这些接口，不依赖具体存储引擎。
"""

from typing import Any, Protocol

from ..models.entry import DailyEntry
from ..models.enums import EventType
from ..models.event import Event


class LedgerStore(Protocol):
    """Journal 存储接口

    journal append-only：只允许插入，不允许更新或删除。
    """

    async def append(self, event_type: EventType, payload: dict[str, Any]) -> Event:
        """追加事件，返回带 id / timestamp / checksum 的事件"""
        ...

    async def read_all(self) -> list[Event]:
        """按 (timestamp, 写入顺序) 读取全部事件"""
        ...

    async def read_by_type(self, event_type: EventType) -> list[Event]:
        """读取指定类型的事件"""
        ...

    async def count(self) -> int:
        """事件总数"""
        ...


class EntryStore(Protocol):
    """DailyEntry 物化视图接口"""

    async def get(self, entry_id: str) -> DailyEntry | None:
        """根据 id 查询 entry"""
        ...

    async def list_entries(self, child_id: str | None = None) -> list[DailyEntry]:
        """查询 entry 列表"""
        ...

    async def count(self) -> int:
        """entry 总数"""
        ...

    async def put(self, entry: DailyEntry) -> None:
        """写入或覆盖单个 entry"""
        ...

    async def delete(self, entry_id: str) -> None:
        """删除单个 entry"""
        ...

    async def replace_all(self, entries: list[DailyEntry]) -> None:
        """清空后批量写入"""
        ...
