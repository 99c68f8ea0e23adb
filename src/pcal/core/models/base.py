"""模型基类 -- JSON 线格式使用 camelCase 字段名"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Python 属性为 snake_case，序列化为 camelCase"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """导出为 JSON 兼容的 camelCase 字典（省略 None 字段）"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
