"""PCAL Core 异常体系

所有异常都向调用方传播，核心层不做自动重试。
recoverable 标记调用方是否可以通过重试恢复。
"""


class PcalError(Exception):
    """PCAL 基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class SerializationError(PcalError):
    """payload 无法序列化为规范 JSON，无法计算 checksum"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class PersistenceError(PcalError):
    """本地持久化读写失败（磁盘、锁、约束冲突等）

    调用方不能假设物化视图已被更新。
    """

    def __init__(self, operation: str, original_error: Exception) -> None:
        """
        Args:
            operation: 失败的存储操作名称
            original_error: 原始异常
        """
        super().__init__(
            f"本地存储操作失败: {operation} -- {original_error}",
            recoverable=False,
        )
        self.operation = operation
        self.original_error = original_error


class IntegrityViolation(PcalError):
    """重放时事件 checksum 不匹配

    对恢复流程是致命错误：应用必须停止初始化，不能带着部分状态继续运行。
    """

    def __init__(self, event_id: str) -> None:
        super().__init__(
            f"Journal integrity violation: event {event_id} has invalid checksum",
            recoverable=False,
        )
        self.event_id = event_id


class EntryNotFoundError(PcalError):
    """目标 DailyEntry 在物化视图中不存在"""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"DailyEntry 不存在: {entry_id}", recoverable=False)
        self.entry_id = entry_id


class EntryLockedError(PcalError):
    """DailyEntry 已锁定，不允许修改活动行或签名"""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"DailyEntry 已锁定: {entry_id}", recoverable=False)
        self.entry_id = entry_id


class BackupFormatError(PcalError):
    """备份文件不是合法的 PCAL 导出格式"""

    def __init__(self, message: str = "Invalid backup file format") -> None:
        super().__init__(message, recoverable=False)
