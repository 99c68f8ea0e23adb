"""DailyEntry Domain Model

daily_entries 表是 journal 的物化视图，可以随时从 journal 重建。
"""

from datetime import datetime, timedelta

from pydantic import Field

from .base import WireModel

_TIME_FORMAT = "%H:%M"


class ActivityLine(WireModel):
    """DailyEntry 内的一条活动记录"""

    id: str = Field(description="活动行 ID，在所属 entry 内唯一")
    goal_code: int = Field(description="关联的 Goal 编号")
    selected_activities: list[str] = Field(default_factory=list)
    custom_narrative: str = Field(default="", description="用户输入的叙述")
    start_time: str = Field(default="", description="开始时间 HH:MM")
    end_time: str = Field(default="", description="结束时间 HH:MM")
    duration_minutes: int = Field(default=0, description="时长（分钟）")


class ActivityLineUpdate(WireModel):
    """LINE_UPDATED 的部分更新字段

    只合并显式设置且非 null 的字段。ActivityLine 的字段都不可为空，
    null 等同于未设置，不能用来清空字段；清空文本应传空字符串。
    """

    goal_code: int | None = None
    selected_activities: list[str] | None = None
    custom_narrative: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration_minutes: int | None = None


class DailyEntry(WireModel):
    """DailyEntry 数据模型 -- 某个孩子某一天的活动记录"""

    id: str = Field(description="唯一标识，ULID 格式")
    date: str = Field(description="日期 YYYY-MM-DD")
    child_id: str = Field(description="关联的 Child ID")
    lines: list[ActivityLine] = Field(default_factory=list)
    signature_base64: str | None = Field(default=None, description="签名 PNG Data URL")
    ai_summary: str | None = Field(default=None)
    ai_summary_provider: str | None = Field(default=None)
    is_locked: bool = Field(default=False)
    emailed_at: int | None = Field(default=None, description="邮件发送时间（epoch ms）")


def calculate_time_fields(
    start_time: str,
    end_time: str | None = None,
    duration_minutes: int | None = None,
) -> tuple[str, str, int]:
    """根据开始时间补全结束时间或时长

    - start + end -> 时长（分钟）
    - start + duration -> 结束时间（跨午夜取模）
    - 都未提供 -> 结束时间等于开始时间，时长 0

    Returns:
        (start_time, end_time, duration_minutes)
    """
    start = datetime.strptime(start_time, _TIME_FORMAT)

    if end_time:
        end = datetime.strptime(end_time, _TIME_FORMAT)
        duration = int((end - start).total_seconds() // 60)
        return start_time, end_time, duration

    if duration_minutes is not None:
        end = start + timedelta(minutes=duration_minutes)
        return start_time, end.strftime(_TIME_FORMAT), duration_minutes

    return start_time, start_time, 0
