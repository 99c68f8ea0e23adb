"""启动恢复策略

在任何组件读取物化视图之前调用一次，根据 journal 与物化视图的记录数决定是否需要重放。

| journal | 物化视图 | 动作 |
|---|---|---|
| 0  | 0  | 无 -- 全新安装 |
| >0 | 0  | 重放 -- 物化视图丢失或从未构建 |
| >0 | >0 | 无 -- 视为健康（不做深度比对） |
| 0  | >0 | 无 -- 容忍的异常，仅告警 |
"""

import structlog

from .models.enums import RecoveryAction
from .replay import replay
from .store.protocols import EntryStore, LedgerStore

log = structlog.get_logger()


async def ensure_consistent(ledger: LedgerStore, entries: EntryStore) -> RecoveryAction:
    """检查并在需要时从 journal 恢复物化视图

    Raises:
        IntegrityViolation: 重放时发现损坏事件；调用方必须停止初始化
    """
    ledger_count = await ledger.count()
    entry_count = await entries.count()

    await log.ainfo(
        "recovery_check",
        ledger_count=ledger_count,
        entry_count=entry_count,
    )

    if ledger_count > 0 and entry_count == 0:
        await log.awarning("recovery_replay_required", ledger_count=ledger_count)
        await replay(ledger, entries)
        action = RecoveryAction.REPLAYED
    elif ledger_count > 0:
        action = RecoveryAction.NONE_HEALTHY
    elif entry_count > 0:
        await log.awarning("recovery_anomaly_entries_without_journal", entry_count=entry_count)
        action = RecoveryAction.NONE_ANOMALY
    else:
        action = RecoveryAction.NONE_FRESH

    await log.ainfo("recovery_decision", action=action.value)
    return action
