"""Checksum 模块 -- 事件 payload 指纹

SHA-256 计算于规范化 JSON（键排序、紧凑分隔符、UTF-8）之上，
与字典键的插入顺序无关。追加事件与重放校验共用同一实现。
"""

import hashlib
import json
from typing import Any

from .exceptions import SerializationError


def canonical_json(payload: Any) -> str:
    """将 payload 序列化为规范 JSON 字符串

    Raises:
        SerializationError: payload 含有无法序列化的值（set、任意对象、NaN、
            无法编码为 UTF-8 的孤立代理字符等）
    """
    try:
        text = json.dumps(
            payload,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        text.encode("utf-8")
    except (TypeError, ValueError) as e:
        # UnicodeEncodeError 是 ValueError 的子类
        raise SerializationError(f"payload 无法序列化: {e}") from e
    return text


def checksum(payload: Any) -> str:
    """计算 payload 的 SHA-256 十六进制指纹"""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def verify(payload: Any, expected: str) -> bool:
    """校验 payload 指纹是否与 expected 一致

    无法序列化的 payload 视为校验失败。
    """
    try:
        return checksum(payload) == expected
    except SerializationError:
        return False
