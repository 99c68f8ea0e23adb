"""structlog 配置 -- CLI 与 sync gateway 共用

PCAL_LOG_FORMAT=json 输出单行 JSON（gateway 部署），其余值输出控制台格式。
凭据与签名图片不进入日志：scrub_sensitive 在渲染前处理 event_dict。
"""

import logging
import os
from typing import Any

import structlog

# 值整体替换为 "***"
_SECRET_KEYS = frozenset({"token", "authorization", "api_tokens"})
# 签名 PNG Data URL 可达数百 KB，只记录长度
_BULKY_KEYS = frozenset({"signature_base64", "signatureBase64"})
# 第三方库的逐语句 / 逐请求日志
_NOISY_LOGGERS = ("aiosqlite", "httpx", "httpcore")


def scrub_sensitive(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """structlog processor：隐藏凭据，签名数据替换为长度描述"""
    for key, value in event_dict.items():
        if key in _SECRET_KEYS and value:
            event_dict[key] = "***"
        elif key in _BULKY_KEYS and isinstance(value, str):
            event_dict[key] = f"<{len(value)} chars>"
    return event_dict


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与标准库 logging

    Args:
        log_format: "json" 或 "dev"，缺省读取 PCAL_LOG_FORMAT
        log_level: 级别名，缺省读取 PCAL_LOG_LEVEL（INFO）
    """
    log_format = log_format or os.environ.get("PCAL_LOG_FORMAT", "dev")
    level_name = (log_level or os.environ.get("PCAL_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        scrub_sensitive,
    ]

    if log_format == "json":
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # DEBUG 时保留第三方细节
    noisy_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
