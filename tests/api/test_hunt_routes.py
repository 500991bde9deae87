"""HTTP tests for the hunt engine API, run in-process against the seeded fleet."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from huntengine import database, dependencies

ORG = "org-1"
SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

_SINGLETONS = (
    "_config_instance",
    "_indicator_store",
    "_hunt_job_store",
    "_match_store",
    "_inventory_source",
    "_log_source",
    "_quick_search",
    "_hunt_executor",
)


@pytest_asyncio.fixture
async def client(engine, fleet, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    for name in _SINGLETONS:
        monkeypatch.setattr(dependencies, name, None)
    monkeypatch.setattr(database, "_engine", engine)
    monkeypatch.setattr(database, "_session_factory", fleet)

    from huntengine.main import create_app

    app = create_app()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Organization-Id": ORG},
    ) as ac:
        yield ac


async def _create_hunt(client, *values):
    ids = []
    for value in values:
        resp = await client.post("/api/v1/indicators/", json={"value": value})
        assert resp.status_code == 201
        ids.append(resp.json()["id"])
    resp = await client.post("/api/v1/hunts/", json={"name": "sweep", "indicator_ids": ids})
    assert resp.status_code == 201
    return resp.json()


class TestBasics:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_organization_header_required(self, client):
        resp = await client.get("/api/v1/indicators/", headers={"X-Organization-Id": ""})
        assert resp.status_code == 400
        assert resp.json()["error"] is True


class TestIndicatorRoutes:
    @pytest.mark.asyncio
    async def test_create_classifies_value(self, client):
        resp = await client.post("/api/v1/indicators/", json={"value": SHA256, "severity": "high"})

        assert resp.status_code == 201
        body = resp.json()
        assert body["kind"] == "file_hash"
        assert body["hash_algorithm"] == "sha256"
        assert body["organization_id"] == ORG

    @pytest.mark.asyncio
    async def test_bad_severity_is_422(self, client):
        resp = await client.post("/api/v1/indicators/", json={"value": "evil.exe", "severity": "urgent"})

        assert resp.status_code == 422
        assert resp.json()["error_type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_missing_value_is_422(self, client):
        resp = await client.post("/api/v1/indicators/", json={"severity": "low"})
        assert resp.status_code == 422
        assert resp.json()["errors"]

    @pytest.mark.asyncio
    async def test_import_text(self, client):
        resp = await client.post(
            "/api/v1/indicators/import",
            json={"text": "evil.exe\nsvchost,process_name\n"},
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["created"] == 2
        assert [i["kind"] for i in body["items"]] == ["file_name", "process_name"]

    @pytest.mark.asyncio
    async def test_bulk_rejects_whole_batch(self, client):
        resp = await client.post(
            "/api/v1/indicators/bulk",
            json={"items": [{"value": "evil.exe"}, {"value": "   "}]},
        )

        assert resp.status_code == 422
        assert "Entry 1" in resp.json()["detail"]
        assert (await client.get("/api/v1/indicators/")).json() == []

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client):
        created = (await client.post("/api/v1/indicators/", json={"value": "evil.exe"})).json()

        resp = await client.patch(f"/api/v1/indicators/{created['id']}", json={"is_active": False})
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        active = (await client.get("/api/v1/indicators/", params={"active_only": True})).json()
        assert active == []

        assert (await client.delete(f"/api/v1/indicators/{created['id']}")).status_code == 204
        assert (await client.get(f"/api/v1/indicators/{created['id']}")).status_code == 404


class TestHuntFlow:
    @pytest.mark.asyncio
    async def test_create_execute_review_delete(self, client):
        job = await _create_hunt(client, SHA256)
        assert job["status"] == "pending"

        resp = await client.post(f"/api/v1/hunts/{job['id']}/execute")
        assert resp.status_code == 200
        assert resp.json() == {"total_matches": 2, "total_endpoints": 2}

        finished = (await client.get(f"/api/v1/hunts/{job['id']}")).json()
        assert finished["status"] == "completed"
        assert finished["matches_found"] == 2

        matches = (await client.get(f"/api/v1/hunts/{job['id']}/matches")).json()
        assert {m["endpoint"]["hostname"] for m in matches} == {"ws-alpha", "ws-bravo"}

        match_id = matches[0]["id"]
        resp = await client.patch(f"/api/v1/matches/{match_id}/review", json={"reviewed": True})
        assert resp.status_code == 422

        resp = await client.patch(
            f"/api/v1/matches/{match_id}/review", json={"reviewed": True, "actor": "analyst"},
        )
        assert resp.status_code == 200
        assert resp.json()["reviewed_by"] == "analyst"

        unreviewed = (await client.get(
            f"/api/v1/hunts/{job['id']}/matches", params={"reviewed": False},
        )).json()
        assert len(unreviewed) == 1

        stats = (await client.get("/api/v1/hunts/stats")).json()
        assert stats["by_status"]["completed"] == 1

        assert (await client.delete(f"/api/v1/hunts/{job['id']}")).status_code == 204
        assert (await client.get(f"/api/v1/hunts/{job['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_rerun_is_409(self, client):
        job = await _create_hunt(client, SHA256)
        await client.post(f"/api/v1/hunts/{job['id']}/execute")

        resp = await client.post(f"/api/v1/hunts/{job['id']}/execute")
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "ConflictError"

    @pytest.mark.asyncio
    async def test_matched_indicator_value_is_frozen(self, client):
        job = await _create_hunt(client, SHA256)
        await client.post(f"/api/v1/hunts/{job['id']}/execute")

        resp = await client.patch(f"/api/v1/indicators/{job['indicator_ids'][0]}", json={"value": "other.exe"})
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_other_organization_sees_nothing(self, client):
        job = await _create_hunt(client, SHA256)
        other = {"X-Organization-Id": "org-2"}

        assert (await client.get(f"/api/v1/hunts/{job['id']}", headers=other)).status_code == 404
        resp = await client.post(f"/api/v1/hunts/{job['id']}/execute", headers=other)
        assert resp.status_code == 404
        assert (await client.get("/api/v1/hunts/", headers=other)).json() == []

    @pytest.mark.asyncio
    async def test_blank_hunt_name_is_422(self, client):
        resp = await client.post("/api/v1/hunts/", json={"name": " "})
        assert resp.status_code == 422


class TestQuickSearchRoute:
    @pytest.mark.asyncio
    async def test_quick_search(self, client):
        resp = await client.post("/api/v1/search/quick", json={"value": "powershell.exe"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 3
        assert [r["source"] for r in body["results"]] == ["inventory", "log", "log"]
        assert (await client.get("/api/v1/hunts/")).json() == []

    @pytest.mark.asyncio
    async def test_blank_value_is_422(self, client):
        resp = await client.post("/api/v1/search/quick", json={"value": "  "})
        assert resp.status_code == 422
