"""全局 pytest 配置 -- 临时 SQLite 数据库与 Store fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio


class StepClock:
    """可控的 journal 时钟（epoch ms），每次读取后前进 step"""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "pcal.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path, clock: StepClock) -> AsyncGenerator:
    """提供已初始化的本地 StoreGroup"""
    from pcal.core.store import create_store_group

    sg = await create_store_group(str(tmp_db_path), clock=clock)
    yield sg
    await sg.close()


@pytest_asyncio.fixture
async def remote_store(tmp_path: Path) -> AsyncGenerator:
    """提供已初始化的云端存储"""
    from pcal.sync.remote_store import open_remote_store

    store = await open_remote_store(str(tmp_path / "remote" / "pcal_remote.db"))
    yield store
    await store.close()


API_TOKENS = {"tok-1": "user-1", "tok-2": "user-2"}


@pytest_asyncio.fixture
async def gateway_app(remote_store):
    """sync gateway app（手动初始化 app.state，绕过 lifespan）"""
    from pcal.gateway.identity import StaticTokenIdentity
    from pcal.gateway.main import create_app

    app = create_app()
    app.state.remote_store = remote_store
    app.state.identity = StaticTokenIdentity(API_TOKENS)
    yield app


@pytest_asyncio.fixture
async def gateway_client(gateway_app) -> AsyncGenerator:
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=gateway_app),
        base_url="http://test",
    ) as ac:
        yield ac
