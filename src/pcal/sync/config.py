"""SyncConfig -- 云端同步配置加载

从环境变量加载配置。
"""

import os

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class SyncConfig(BaseModel):
    """云端同步配置 -- 从环境变量加载

    环境变量:
        PCAL_SYNC_URL: sync gateway 地址（默认 http://localhost:8000）
        PCAL_SYNC_TOKEN: Bearer token
        PCAL_USER_ID: 已解析的用户标识
        PCAL_SYNC_TIMEOUT_S: 请求超时（秒，默认 30）
    """

    base_url: str = Field(
        default="http://localhost:8000",
        description="sync gateway 基础 URL",
    )
    token: SecretStr = Field(default=SecretStr(""), description="Bearer token")
    user_id: str = Field(default="", description="身份协作方解析出的用户标识")
    timeout_s: int = Field(default=30, ge=1, description="请求超时（秒）")


def load_sync_config() -> SyncConfig:
    """从环境变量加载同步配置

    环境变量映射:
        PCAL_SYNC_URL -> base_url
        PCAL_SYNC_TOKEN -> token
        PCAL_USER_ID -> user_id
        PCAL_SYNC_TIMEOUT_S -> timeout_s（非法值记录告警并使用默认值）

    Returns:
        SyncConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("PCAL_SYNC_URL"):
        kwargs["base_url"] = val

    if val := os.environ.get("PCAL_SYNC_TOKEN"):
        kwargs["token"] = SecretStr(val)

    if val := os.environ.get("PCAL_USER_ID"):
        kwargs["user_id"] = val

    if val := os.environ.get("PCAL_SYNC_TIMEOUT_S"):
        try:
            timeout_s = int(val)
        except ValueError:
            timeout_s = 0
        if timeout_s >= 1:
            kwargs["timeout_s"] = timeout_s
        else:
            log.warning(
                "invalid_timeout_config",
                env_var="PCAL_SYNC_TIMEOUT_S",
                value=val,
                fallback=30,
            )

    return SyncConfig(**kwargs)
