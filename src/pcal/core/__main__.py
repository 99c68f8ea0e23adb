"""CLI 入口模块 -- python -m pcal.core <command>

支持的命令：
  replay                          从 journal 重建 daily_entries 表
  ensure-consistent               启动恢复检查（必要时重放）
  verify                          校验 journal checksum，不写入
  export <file>                   导出完整备份
  import <file> [merge|replace]   导入备份（默认 replace）
  push                            上传本地数据到 sync gateway
  pull                            从 sync gateway 拉取数据
"""

import asyncio
import sys
from pathlib import Path

from .config import get_db_path
from .exceptions import PcalError
from .logging_config import setup_logging
from .models.enums import ImportMode

_USAGE = """用法: python -m pcal.core <command>
命令:
  replay                          从 journal 重建 daily_entries 表
  ensure-consistent               启动恢复检查（必要时重放）
  verify                          校验 journal checksum，不写入
  export <file>                   导出完整备份
  import <file> [merge|replace]   导入备份（默认 replace）
  push                            上传本地数据到 sync gateway
  pull                            从 sync gateway 拉取数据"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command, args = sys.argv[1], sys.argv[2:]
    setup_logging()

    if command == "replay":
        coro = run_replay()
    elif command == "ensure-consistent":
        coro = run_ensure_consistent()
    elif command == "verify":
        coro = run_verify()
    elif command == "export" and len(args) == 1:
        coro = run_export(Path(args[0]))
    elif command == "import" and len(args) in (1, 2):
        try:
            mode = ImportMode(args[1]) if len(args) == 2 else ImportMode.REPLACE
        except ValueError:
            print(f"未知导入模式: {args[1]}（可用: merge, replace）")
            sys.exit(1)
        coro = run_import(Path(args[0]), mode)
    elif command in ("push", "pull"):
        coro = run_sync(command)
    else:
        print(f"未知命令或参数错误: {' '.join(sys.argv[1:])}")
        print(_USAGE)
        sys.exit(1)

    try:
        exit_code = asyncio.run(coro)
    except PcalError as e:
        print(f"失败: {e}")
        sys.exit(1)
    sys.exit(exit_code)


async def run_replay() -> int:
    """执行完整重放"""
    from .replay import replay
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    print("开始重放 journal...")

    store_group = await create_store_group(db_path)
    try:
        entries = await replay(store_group.ledger, store_group.entries)
        print(f"重放完成，重建 {len(entries)} 条 DailyEntry")
    finally:
        await store_group.close()
    return 0


async def run_ensure_consistent() -> int:
    from .recovery import ensure_consistent
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        action = await ensure_consistent(store_group.ledger, store_group.entries)
        print(f"恢复检查完成: {action.value}")
    finally:
        await store_group.close()
    return 0


async def run_verify() -> int:
    """校验 journal，存在损坏事件时返回非零退出码"""
    from .replay import verify_ledger
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        report = await verify_ledger(store_group.ledger)
    finally:
        await store_group.close()

    if report.ok:
        print(f"校验通过，共 {report.event_count} 条事件")
        return 0
    print(f"校验失败: 事件 {report.first_invalid_event_id} checksum 不匹配")
    return 2


async def run_export(target: Path) -> int:
    from .backup import export_all
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        export = await export_all(store_group)
    finally:
        await store_group.close()

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(export.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    print(f"已导出到 {target}（journal {len(export.data.journal)} 条）")
    return 0


async def run_import(source: Path, mode: ImportMode) -> int:
    from .backup import import_data
    from .store import create_store_group

    raw = source.read_text(encoding="utf-8")
    store_group = await create_store_group(get_db_path())
    try:
        result = await import_data(store_group, raw, mode)
    finally:
        await store_group.close()

    print(
        f"导入完成（{result.mode.value}）: children {result.children}, "
        f"entries {result.entries}, goals {result.goals}, "
        f"journal {result.journal_events}, 跳过 {result.skipped}"
    )
    return 0


async def run_sync(direction: str) -> int:
    """通过 HTTP 客户端与 sync gateway 同步"""
    from pcal.sync import CloudSyncClient, Reconciler, load_sync_config

    from .store import create_store_group

    config = load_sync_config()
    if not config.user_id:
        print("未配置 PCAL_USER_ID")
        return 1

    client = CloudSyncClient(
        base_url=config.base_url,
        token=config.token.get_secret_value(),
        timeout_s=config.timeout_s,
    )
    store_group = await create_store_group(get_db_path())
    try:
        reconciler = Reconciler(store_group, client)
        if direction == "push":
            last_sync_at = await reconciler.push(config.user_id)
            print(f"上传完成，lastSyncAt={last_sync_at.isoformat()}")
        else:
            result = await reconciler.pull(config.user_id)
            print(
                f"拉取完成: children {result.children}, goals {result.goals}, "
                f"entries 写入 {result.entries_restored} / 未变 {result.entries_unchanged}"
                f" / 跳过 {result.entries_skipped}"
            )
    finally:
        await store_group.close()
    return 0


if __name__ == "__main__":
    main()
