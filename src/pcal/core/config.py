"""配置常量模块 -- 可通过环境变量覆盖

包含本地数据库路径、云端（remote）数据库路径、gateway token 映射等可配置项。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取 data 基础目录"""
    return Path(os.environ.get("PCAL_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取本地 SQLite 数据库路径（journal + 物化视图）"""
    return os.environ.get(
        "PCAL_DB_PATH",
        str(_get_base_dir() / "sqlite" / "pcal.db"),
    )


def get_remote_db_path() -> str:
    """获取云端镜像数据库路径（sync gateway 使用）"""
    return os.environ.get(
        "PCAL_REMOTE_DB_PATH",
        str(_get_base_dir() / "sqlite" / "pcal_remote.db"),
    )


def get_api_tokens() -> dict[str, str]:
    """解析 PCAL_API_TOKENS（"token:user_id,token2:user_id2"）为 token -> user_id 映射

    格式不正确的项被忽略。
    """
    tokens: dict[str, str] = {}
    raw = os.environ.get("PCAL_API_TOKENS", "")
    for item in raw.split(","):
        token, sep, user_id = item.strip().partition(":")
        if sep and token and user_id:
            tokens[token] = user_id
    return tokens


# 备份导出格式版本
EXPORT_VERSION: int = 1

# 备份文件 appName 标识
EXPORT_APP_NAME: str = "PCAL"
