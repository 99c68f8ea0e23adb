"""端到端测试 -- 两台设备通过 HTTP gateway 同步

设备 A 写入、push；设备 B pull 后物化视图丢失，恢复策略从 journal 重放出同样状态。
"""

from httpx import ASGITransport
from pcal.core.journal import JournalService
from pcal.core.models.enums import RecoveryAction
from pcal.core.models.reference import Child, Goal
from pcal.core.recovery import ensure_consistent
from pcal.core.store import create_store_group
from pcal.sync.client import CloudSyncClient
from pcal.sync.reconcile import Reconciler


class TestTwoDevices:
    async def test_sync_then_recover(self, gateway_app, tmp_path):
        client = CloudSyncClient(
            base_url="http://test",
            token="tok-1",
            transport=ASGITransport(app=gateway_app),
        )
        device_a = await create_store_group(str(tmp_path / "a.db"))
        device_b = await create_store_group(str(tmp_path / "b.db"))
        try:
            await device_a.children.put(Child(id="c1", name="Al"))
            await device_a.goals.put(Goal(code=2, description="Motor", activities=["Run"]))
            journal = JournalService(device_a)
            kept = await journal.create_entry("2024-05-01", "c1")
            await journal.add_line(kept.id, goal_code=2, start_time="10:00", end_time="10:30")
            await journal.save_signature(kept.id, "AAA")
            dropped = await journal.create_entry("2024-05-02", "c1")

            await Reconciler(device_a, client).push("user-1")
            await journal.delete_entry(dropped.id)
            await Reconciler(device_a, client).push("user-1")

            result = await Reconciler(device_b, client).pull("user-1")
            assert result.entries_restored == 1
            assert (result.children, result.goals) == (1, 1)

            expected = await device_a.entries.get(kept.id)
            assert await device_b.entries.get(kept.id) == expected
            assert await device_b.entries.get(dropped.id) is None

            # 设备 B 物化视图丢失 -> 启动时重放
            await device_b.entries.clear()
            action = await ensure_consistent(device_b.ledger, device_b.entries)
            assert action == RecoveryAction.REPLAYED
            assert await device_b.entries.get(kept.id) == expected
        finally:
            await device_a.close()
            await device_b.close()
