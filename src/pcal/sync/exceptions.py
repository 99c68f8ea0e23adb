"""Sync 异常"""

from pcal.core.exceptions import PcalError


class RemoteError(PcalError):
    """云端存储或网络调用失败

    携带 HTTP 状态码（如有）供调用方决定是否重试；同步本身不做自动重试。
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        """
        Args:
            message: 错误描述
            status: HTTP 状态码，非 HTTP 错误时为 None
        """
        super().__init__(message, recoverable=True)
        self.status = status
