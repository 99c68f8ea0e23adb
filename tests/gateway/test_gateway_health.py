"""健康检查测试"""

from httpx import AsyncClient


class TestHealthCheck:
    async def test_health_returns_200(self, gateway_client: AsyncClient):
        resp = await gateway_client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_request_id_header(self, gateway_client: AsyncClient):
        resp = await gateway_client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 26

    async def test_ready(self, gateway_client: AsyncClient):
        resp = await gateway_client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"]["sqlite"] == "ok"

    async def test_ready_closed_database(self, gateway_app, gateway_client: AsyncClient):
        from pcal.sync.remote_store import open_remote_store

        closed = await open_remote_store(":memory:")
        await closed.close()
        gateway_app.state.remote_store = closed

        resp = await gateway_client.get("/ready")
        assert resp.status_code == 503
        assert resp.json()["status"] == "not_ready"
