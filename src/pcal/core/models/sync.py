"""同步数据模型 -- 一次 push/pull 交换的内容"""

from pydantic import Field

from .base import WireModel
from .entry import DailyEntry
from .reference import Child, Goal


class SyncData(WireModel):
    """push/pull 的数据集合

    deleted_entry_ids 是本地 journal 中 ENTRY_DELETED 的 entry，push 时在云端软删除。
    """

    children: list[Child] = Field(default_factory=list)
    daily_entries: list[DailyEntry] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    deleted_entry_ids: list[str] = Field(default_factory=list)


class PullResult(WireModel):
    """pull 写入本地的统计"""

    children: int = 0
    goals: int = 0
    entries_restored: int = 0
    entries_unchanged: int = 0
    entries_skipped: int = Field(default=0, description="本地已删除、未恢复的 entry 数")
