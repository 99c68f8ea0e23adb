"""sync gateway 路由测试

1. POST /api/sync 写入并返回 lastSyncAt
2. GET /api/sync 返回未软删除的数据
3. 401 / 403 / 422 / 500
"""

from httpx import AsyncClient
from pcal.sync.exceptions import RemoteError

AUTH = {"Authorization": "Bearer tok-1"}

PUSH_BODY = {
    "children": [{"id": "c1", "name": "Al", "center": "East", "teacher": "T"}],
    "dailyEntries": [
        {
            "id": "e1",
            "date": "2024-05-01",
            "childId": "c1",
            "lines": [{"id": "l1", "goalCode": 2, "durationMinutes": 30}],
            "signatureBase64": "AAA",
        }
    ],
    "goals": [{"code": 1, "description": "D", "activities": ["A"]}],
}


class BrokenRemote:
    async def push(self, user_id, data):
        raise RemoteError("Remote store daily_entries.upsert failed: disk I/O error")

    async def pull(self, user_id):
        raise RemoteError("Remote store children.list failed: disk I/O error")


class TestSyncRoutes:
    async def test_push_and_pull(self, gateway_client: AsyncClient):
        resp = await gateway_client.post("/api/sync", json=PUSH_BODY, headers=AUTH)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Sync completed"
        assert body["lastSyncAt"]

        resp = await gateway_client.get("/api/sync", headers=AUTH)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert [c["id"] for c in data["children"]] == ["c1"]
        assert data["dailyEntries"][0]["signatureBase64"] == "AAA"
        assert data["dailyEntries"][0]["lines"][0]["durationMinutes"] == 30
        assert data["goals"] == [{"code": 1, "description": "D", "activities": ["A"]}]
        assert body["lastSyncAt"] is not None

    async def test_push_tombstones(self, gateway_client: AsyncClient):
        await gateway_client.post("/api/sync", json=PUSH_BODY, headers=AUTH)
        resp = await gateway_client.post(
            "/api/sync",
            json={"deletedEntryIds": ["e1"]},
            headers=AUTH,
        )
        assert resp.status_code == 200

        resp = await gateway_client.get("/api/sync", headers=AUTH)
        assert resp.json()["data"]["dailyEntries"] == []

    async def test_pull_before_any_push(self, gateway_client: AsyncClient):
        resp = await gateway_client.get("/api/sync", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["lastSyncAt"] is None
        assert resp.json()["data"]["children"] == []

    async def test_users_do_not_see_each_other(self, gateway_client: AsyncClient):
        await gateway_client.post("/api/sync", json=PUSH_BODY, headers=AUTH)

        resp = await gateway_client.get(
            "/api/sync", headers={"Authorization": "Bearer tok-2"}
        )
        assert resp.json()["data"]["children"] == []


class TestSyncAuth:
    async def test_missing_token(self, gateway_client: AsyncClient):
        resp = await gateway_client.get("/api/sync")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Missing bearer token"}

    async def test_unknown_token(self, gateway_client: AsyncClient):
        resp = await gateway_client.get(
            "/api/sync", headers={"Authorization": "Bearer forged"}
        )
        assert resp.status_code == 401

    async def test_user_header_mismatch(self, gateway_client: AsyncClient):
        resp = await gateway_client.post(
            "/api/sync",
            json=PUSH_BODY,
            headers={**AUTH, "X-PCAL-User": "user-2"},
        )
        assert resp.status_code == 403
        assert resp.json()["success"] is False

    async def test_user_header_match(self, gateway_client: AsyncClient):
        resp = await gateway_client.get(
            "/api/sync", headers={**AUTH, "X-PCAL-User": "user-1"}
        )
        assert resp.status_code == 200


class TestSyncErrors:
    async def test_invalid_body_is_422(self, gateway_client: AsyncClient):
        resp = await gateway_client.post(
            "/api/sync",
            json={"goals": [{"code": "not-a-number"}]},
            headers=AUTH,
        )
        assert resp.status_code == 422

    async def test_remote_failure_is_500(self, gateway_app, gateway_client: AsyncClient):
        gateway_app.state.remote_store = BrokenRemote()

        resp = await gateway_client.post("/api/sync", json=PUSH_BODY, headers=AUTH)
        assert resp.status_code == 500
        assert resp.json()["success"] is False
        assert "disk I/O error" in resp.json()["error"]

        resp = await gateway_client.get("/api/sync", headers=AUTH)
        assert resp.status_code == 500

    async def test_storage_overflow_is_500(self, gateway_client: AsyncClient):
        body = {"goals": [{"code": 2**64, "description": "big"}]}

        resp = await gateway_client.post("/api/sync", json=body, headers=AUTH)
        assert resp.status_code == 500
        assert resp.json()["success"] is False
