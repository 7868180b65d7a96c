from fastapi.testclient import TestClient

from tests.conftest import audit_records


def test_status_returns_ok_with_info(test_app):
    client = TestClient(test_app)
    r = client.get("/_status")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "OK"
    assert body["info"] is not None
    assert body["info"]["name"] == "test-app"
    assert "/_status" in body["info"]["routes"]["GET"]


def test_routes_lists_patterns_per_method(test_app):
    @test_app.get("/a")
    async def get_a():
        return {"a": True}

    @test_app.post("/b")
    async def post_b():
        return {"b": True}

    client = TestClient(test_app)
    r = client.get("/api/admin/_routes")
    assert r.status_code == 200
    body = r.json()
    assert list(body.keys()) == ["GET", "PUT", "DELETE", "POST"]
    assert body == {
        "GET": ["/_status", "/api/admin/_routes", "/a"],
        "PUT": [],
        "DELETE": [],
        "POST": ["/b"],
    }


def test_routes_lists_each_pattern_once(test_app):
    @test_app.get("/items/{item_id}")
    async def get_item(item_id: str):
        return {"id": item_id}

    @test_app.put("/items/{item_id}")
    async def put_item(item_id: str):
        return {"id": item_id}

    @test_app.delete("/items/{item_id}")
    async def delete_item(item_id: str):
        return {"id": item_id}

    body = TestClient(test_app).get("/api/admin/_routes").json()
    assert body["GET"].count("/items/{item_id}") == 1
    assert body["PUT"] == ["/items/{item_id}"]
    assert body["DELETE"] == ["/items/{item_id}"]


def test_docs_routes_disabled_by_default(test_app):
    client = TestClient(test_app)
    assert client.get("/openapi.json").status_code == 404
    assert "/docs" not in client.get("/api/admin/_routes").json()["GET"]


def test_docs_routes_enabled_by_setting(make_app):
    client = TestClient(make_app(enable_docs=True))
    assert client.get("/openapi.json").status_code == 200


def test_admin_requests_are_audited(test_app, log_records):
    client = TestClient(test_app)
    client.get("/_status?verbose=1")

    entries = audit_records(log_records)
    assert len(entries) == 1
    extra = entries[0]["extra"]
    assert extra["req"]["method"] == "GET"
    assert extra["req"]["url"] == "/_status?verbose=1"
    assert extra["res"] == {"statusCode": 200}
    assert extra["latency"] >= 0
    assert entries[0]["message"] == "handled: 200"
