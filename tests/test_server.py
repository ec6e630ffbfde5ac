"""Tests for the REST service endpoints."""

import inspect
from concurrent.futures import ThreadPoolExecutor

from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from worldlines.config import Config
from worldlines.server import create_app, router


class TestStatus:
    def test_status(self, api_client):
        r = api_client.get("/api/status")
        assert r.status_code == 200
        assert r.json() == {"status": "OK", "message": "Worldlines API is running"}


class TestWorldlineEndpoints:
    def test_list_seeded(self, api_client):
        r = api_client.get("/api/temporal-fields")
        assert r.status_code == 200
        assert [w["id"] for w in r.json()] == ["alpha", "beta", "gamma", "delta"]

    def test_get_one(self, api_client):
        r = api_client.get("/api/temporal-fields/beta")
        assert r.status_code == 200
        assert r.json()["percentage"] == 1.130205

    def test_get_missing_404(self, api_client):
        r = api_client.get("/api/temporal-fields/omega")
        assert r.status_code == 404
        assert r.json()["detail"] == "Worldline not found"

    def test_create(self, api_client):
        r = api_client.post("/api/temporal-fields", json={
            "id": "epsilon", "name": "ε", "percentage": 3.3, "color": "rgba(1, 2, 3, 0.8)",
        })
        assert r.status_code == 201
        assert r.json()["id"] == "epsilon"
        assert api_client.get("/api/temporal-fields/epsilon").status_code == 200

    def test_create_missing_field_422(self, api_client):
        r = api_client.post("/api/temporal-fields", json={"id": "epsilon", "name": "ε"})
        assert r.status_code == 422

    def test_create_blank_id_422(self, api_client):
        r = api_client.post("/api/temporal-fields", json={
            "id": "", "name": "ε", "percentage": 3.3, "color": "c",
        })
        assert r.status_code == 422

    def test_update_partial(self, api_client):
        r = api_client.put("/api/temporal-fields/gamma", json={"percentage": 2.5})
        assert r.status_code == 200
        body = r.json()
        assert body["percentage"] == 2.5
        assert body["name"] == "γ"

    def test_update_missing_404(self, api_client):
        r = api_client.put("/api/temporal-fields/omega", json={"name": "Ω"})
        assert r.status_code == 404

    def test_delete(self, api_client):
        r = api_client.delete("/api/temporal-fields/delta")
        assert r.status_code == 200
        assert r.json() == {"message": "Worldline deleted successfully"}
        assert api_client.delete("/api/temporal-fields/delta").status_code == 404


class TestEventEndpoints:
    def test_list_all_ordered_by_position(self, api_client):
        r = api_client.get("/api/temporal-events")
        assert [e["id"] for e in r.json()] == ["april2020", "december2022", "may2025"]

    def test_scope_filter(self, api_client):
        r = api_client.get("/api/temporal-events", params={"scope": "beta"})
        assert [e["id"] for e in r.json()] == ["april2020", "may2025"]

    def test_unknown_scope_empty(self, api_client):
        r = api_client.get("/api/temporal-events", params={"scope": "gamma"})
        assert r.status_code == 200
        assert r.json() == []

    def test_create_and_get(self, api_client):
        r = api_client.post("/api/temporal-events", json={
            "id": "x2030", "date": "2030", "title": "Later", "position": 28.0, "scope": "gamma",
        })
        assert r.status_code == 201
        got = api_client.get("/api/temporal-events/x2030").json()
        assert got["title"] == "Later"
        assert got["lore"] is None

    def test_create_missing_scope_422(self, api_client):
        r = api_client.post("/api/temporal-events", json={
            "id": "x2030", "date": "2030", "title": "Later", "position": 28.0,
        })
        assert r.status_code == 422

    def test_update(self, api_client):
        r = api_client.put("/api/temporal-events/may2025", json={"title": "First day"})
        assert r.status_code == 200
        assert r.json()["title"] == "First day"
        assert r.json()["to_worldline"] == "β: 1.075432%"

    def test_get_missing_404(self, api_client):
        r = api_client.get("/api/temporal-events/nope")
        assert r.status_code == 404
        assert r.json()["detail"] == "Event not found"

    def test_delete(self, api_client):
        assert api_client.delete("/api/temporal-events/may2025").status_code == 200
        assert api_client.delete("/api/temporal-events/may2025").status_code == 404


class TestTimelineConfigEndpoint:
    def test_seeded_span(self, api_client):
        r = api_client.get("/api/temporal-config")
        assert r.status_code == 200
        body = r.json()
        assert body["start_year"] == 2002
        assert body["end_year"] == 2102

    def test_null_when_unset(self, tmp_path):
        config = Config(db_path=str(tmp_path / "empty.db"), seed_on_start=False)
        with TestClient(create_app(config)) as client:
            r = client.get("/api/temporal-config")
            assert r.status_code == 200
            assert r.json() is None
            assert client.get("/api/temporal-fields").json() == []


class TestApiPrefix:
    def test_custom_prefix(self, tmp_path):
        config = Config(db_path=str(tmp_path / "p.db"))
        config.server.api_prefix = "/v2"
        with TestClient(create_app(config)) as client:
            assert client.get("/v2/status").status_code == 200
            assert client.get("/api/status").status_code == 404


class TestThreading:
    def test_handlers_are_sync(self):
        endpoints = [route.endpoint for route in router.routes if isinstance(route, APIRoute)]
        assert endpoints
        assert not any(inspect.iscoroutinefunction(e) for e in endpoints)

    def test_parallel_requests(self, api_client):
        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(
                lambda _: api_client.get("/api/temporal-events"), range(32)
            ))
        assert all(r.status_code == 200 for r in responses)
        assert all(len(r.json()) == 3 for r in responses)
