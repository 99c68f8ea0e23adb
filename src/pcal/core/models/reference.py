"""Child / Goal 参考实体

不经过 journal，直接写入物化表；同步到云端时与 DailyEntry 共享软删除约定。
"""

from pydantic import Field

from .base import WireModel


class Child(WireModel):
    """孩子信息"""

    id: str
    name: str
    center: str = Field(default="")
    teacher: str = Field(default="")


class Goal(WireModel):
    """发展目标"""

    code: int
    description: str
    activities: list[str] = Field(default_factory=list)
