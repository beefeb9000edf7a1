"""Tests for the HTTP and WebSocket API."""

import pytest
from fastapi.testclient import TestClient

from statute_graph.server.app import app

from .conftest import POST, PRE


@pytest.fixture
def client(dataset_dir, monkeypatch):
    monkeypatch.setenv("SG_DATA_DIR", str(dataset_dir))
    monkeypatch.setenv("SG_DEFAULT_TITLE", "26")
    monkeypatch.delenv("SG_DATA_URL", raising=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def empty_client(dataset_dir, monkeypatch):
    monkeypatch.setenv("SG_DATA_DIR", str(dataset_dir))
    monkeypatch.setenv("SG_LOAD_ON_STARTUP", "0")
    monkeypatch.delenv("SG_DATA_URL", raising=False)
    with TestClient(app) as client:
        yield client


SEARCH = {"keywords": "income", "search_fields": ["text"]}


def test_health_reports_loaded_title(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["loaded_title"] == "26"
    assert body["scope"] == PRE


def test_list_titles(client):
    response = client.get("/api/titles")
    assert response.status_code == 200
    assert [t["id"] for t in response.json()["titles"]] == ["7", "8", "26", "42"]


def test_load_unknown_title_is_404(client):
    response = client.post("/api/titles/load", json={"title_id": "999"})
    assert response.status_code == 404
    assert client.get("/api/health").json()["loaded_title"] == "26"


def test_load_missing_file_is_502(client):
    response = client.post("/api/titles/load", json={"title_id": "7"})
    assert response.status_code == 502
    assert client.get("/api/health").json()["loaded_title"] == "26"


def test_load_split_title(client):
    response = client.post("/api/titles/load", json={"title_id": "42"})
    assert response.status_code == 200
    assert response.json()["state"]["title_id"] == "42"


def test_search_and_state(client):
    response = client.post("/api/search", json=SEARCH)
    assert response.status_code == 200
    body = response.json()
    assert body["committed"] is True

    result = body["state"]["result"]
    assert result["matched_count"] == 4
    assert {"s1", "s2", "s3", "i1"} <= {n["id"] for n in result["nodes"]}
    assert client.get("/api/state").json() == body["state"]


def test_search_without_fields_is_400(client):
    response = client.post("/api/search", json={"keywords": "income", "search_fields": []})
    assert response.status_code == 400


def test_search_before_load_is_409(empty_client):
    response = empty_client.post("/api/search", json=SEARCH)
    assert response.status_code == 409


def test_clear_search_restores_scope_view(client):
    client.post("/api/search", json=SEARCH)
    state = client.delete("/api/search").json()
    assert state["result"]["matched_count"] == 6
    assert len(state["result"]["links"]) == 5


def test_scope_switch_reruns_search(client):
    client.post("/api/search", json=SEARCH)
    response = client.post("/api/scope", json={"scope": POST})

    assert response.status_code == 200
    state = response.json()["state"]
    assert state["scope"] == POST
    assert all(n["time"] == POST for n in state["result"]["nodes"])


def test_invalid_scope_is_400(client):
    assert client.post("/api/scope", json={"scope": "later"}).status_code == 400


def test_selection(client):
    response = client.post("/api/selection", json={"node_id": "s1"})
    assert response.status_code == 200
    assert response.json()["selection"] == {"node_id": "s1", "scope": PRE}

    assert client.post("/api/selection", json={"node_id": "s4"}).status_code == 404


def test_relationships_listing(client):
    response = client.get("/api/relationships", params={"scope": PRE, "limit": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["truncated"] is True
    assert len(body["relationships"]) == 2


def test_overview(client):
    client.post("/api/selection", json={"node_id": "s1"})
    body = client.get("/api/overview", params={"limit": 10}).json()

    assert len(body["listing"]["relationships"]) == 5
    assert body["counts"]["s1"] == 6
    assert len(body["selected"]["relationships"]) == 3


def test_node_endpoints(client):
    detail = client.get("/api/nodes/s1").json()
    assert detail["available"] is True

    missing = client.get("/api/nodes/nope").json()
    assert missing["available"] is False
    assert missing["message"] == "No details available"

    text = client.get("/api/nodes/s4/text", params={"scope": POST}).json()
    assert text == {"text": "no tax on tips"}

    rels = client.get("/api/nodes/s1/relationships").json()
    assert len(rels["relationships"]) == 3


def test_node_search_and_counts(client):
    hits = client.get("/api/nodes", params={"q": "u.s.c"}).json()
    assert [h["id"] for h in hits] == ["s1", "s2", "s3"]

    counts = client.get("/api/counts", params={"scope": PRE, "ids": ["s1", "s2"]}).json()
    assert counts == {"s1": 6, "s2": 4}


def test_stats(client):
    assert client.get("/api/stats").json()["total_triples"] == 9


def test_stats_before_load_is_409(empty_client):
    assert empty_client.get("/api/stats").status_code == 409


def test_websocket_receives_commits(client):
    with client.websocket_connect("/ws") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "hello"
        assert hello["state"]["title_id"] == "26"

        client.post("/api/scope", json={"scope": POST})
        message = ws.receive_json()
        assert message["type"] == "display_committed"
        assert message["state"]["scope"] == POST

        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong", "message": "ping"}
