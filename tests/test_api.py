"""End-to-end tests for the HTTP surface with an in-memory graph store."""

import json
import time
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from mongo import MongoClient
from settings import FrontierSettings, Settings
from tests.conftest import NOW
from tests.fakes import FakeDatabase

ADMIN_KEY = "admin-secret"
WORKER_KEY = "worker-key"


@pytest.fixture
def graph_db() -> FakeDatabase:
    db = FakeDatabase()
    db.add_client(WORKER_KEY)
    return db


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ADMIN_KEY=ADMIN_KEY,
        frontier=FrontierSettings(
            graph_path=str(tmp_path / "graph.json"),
            prune_interval_seconds=3600,
            seeds=["https://seed.example/"],
        ),
    )


@pytest.fixture
def client(graph_db, settings):
    app = create_app(settings=settings, mongo=MongoClient.from_database(graph_db))
    with TestClient(app) as test_client:
        yield test_client


def _worker():
    return {"Authorization": WORKER_KEY}


def _admin():
    return {"Authorization": ADMIN_KEY}


def test_startup_seeds_frontier_and_creates_indexes(client, graph_db):
    assert client.app.state.frontier.snapshot() == ["https://seed.example/"]
    assert graph_db.pages.indexes


def test_startup_fills_queue_from_stored_links(graph_db, settings):
    graph_db.add_page("https://known.example/", last_scraped=NOW - timedelta(days=30))
    graph_db.add_link("https://known.example/", "https://next.example/")
    app = create_app(settings=settings, mongo=MongoClient.from_database(graph_db))

    with TestClient(app) as test_client:
        queued = set(test_client.app.state.frontier.snapshot())

    assert queued == {"https://seed.example/", "https://next.example/"}


def test_create_account_requires_admin_secret(client, graph_db):
    assert client.post("/create_account").status_code == 401
    assert client.post("/create_account", headers={"Authorization": "wrong"}).status_code == 401

    response = client.post("/create_account", headers=_admin())

    assert response.status_code == 200
    assert response.text in [d["apiKey"] for d in graph_db.clients.docs]


def test_new_account_can_fetch_work(client):
    api_key = client.post("/create_account", headers=_admin()).text

    response = client.get("/work", headers={"Authorization": api_key})

    assert response.status_code == 200
    assert response.text == "https://seed.example/"


def test_auth_failures_are_indistinguishable(client):
    bad_admin = client.get("/graph", headers={"Authorization": "nope"})
    bad_worker = client.get("/work", headers={"Authorization": "nope"})

    assert bad_admin.status_code == bad_worker.status_code == 401
    assert bad_admin.json() == bad_worker.json() == {"detail": "Unauthorized"}


def test_admin_secret_is_not_a_worker_key(client):
    assert client.get("/work", headers=_admin()).status_code == 401


def test_get_work_returns_empty_body_when_exhausted(client):
    assert client.get("/work", headers=_worker()).text == "https://seed.example/"

    response = client.get("/work", headers=_worker())

    assert response.status_code == 200
    assert response.text == ""


def test_post_work_records_report_and_enqueues_links(client, graph_db):
    payload = {
        "orig_url": "https://seed.example/",
        "result_url": "https://seed.example/",
        "success": True,
        "links": [
            {"to": "https://friend.example/", "image": "https://seed.example/friend.gif", "image_hash": "f1"},
            {"to": "javascript:void(0)", "image": "", "image_hash": ""},
        ],
    }

    response = client.post("/work", headers=_worker(), json=payload)

    assert response.status_code == 204
    assert response.content == b""
    assert [d["dstUrl"] for d in graph_db.links.docs] == ["https://friend.example/"]
    assert "https://friend.example/" in client.app.state.frontier


def test_post_work_with_redirect_then_orig_is_ineligible(client, graph_db):
    payload = {
        "orig_url": "http://seed.example/",
        "result_url": "https://seed.example/",
        "success": False,
        "links": None,
    }

    assert client.post("/work", headers=_worker(), json=payload).status_code == 204

    assert graph_db.redirects.docs[0]["from"] == "http://seed.example/"
    assert graph_db.redirects.docs[0]["to"] == "https://seed.example/"
    assert not any(d["url"] == "http://seed.example/" for d in graph_db.pages.docs)


def test_post_work_rejects_invalid_urls(client, graph_db):
    payload = {"orig_url": "ftp://seed.example/", "result_url": "https://seed.example/", "success": True, "links": []}

    response = client.post("/work", headers=_worker(), json=payload)

    assert response.status_code == 400
    assert graph_db.pages.docs == []


def test_post_work_schema_violation_is_a_client_error(client, graph_db):
    response = client.post("/work", headers=_worker(), json={"orig_url": "https://seed.example/"})

    assert response.status_code == 422
    assert graph_db.pages.docs == []


def test_post_work_requires_worker_key(client):
    payload = {"orig_url": "https://a.example/", "result_url": "https://a.example/", "success": True, "links": []}
    assert client.post("/work", json=payload).status_code == 401


def test_graph_export_runs_in_background(client, graph_db, settings):
    graph_db.add_page("https://a.example/")
    graph_db.add_link("https://a.example/", "https://b.example/", image="https://a.example/b.gif", image_hash="h")

    assert client.get("/graph/latest", headers=_admin()).status_code == 404

    response = client.get("/graph", headers=_admin())
    assert response.status_code == 204

    exporter = client.app.state.exporter
    deadline = time.monotonic() + 5
    while exporter.latest is None and time.monotonic() < deadline:
        time.sleep(0.01)

    latest = client.get("/graph/latest", headers=_admin())
    assert latest.status_code == 200
    assert latest.json()["linksTo"] == {"a.example": ["b.example"]}
    with open(settings.frontier.graph_path, encoding="utf-8") as fh:
        assert json.load(fh)["images"] == {"b.example": ["https://a.example/b.gif"]}


def test_graph_requires_admin(client):
    assert client.get("/graph", headers=_worker()).status_code == 401


def test_health_and_status(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/health").json()["mongo"] is True

    assert client.get("/status").status_code == 401
    status = client.get("/status", headers=_admin()).json()
    assert status == {"queue": 1, "pruning": True, "export": "never"}


def test_logs_endpoint_returns_lines(client):
    client.post("/create_account", headers=_admin())

    response = client.get("/logs", headers=_admin(), params={"limit": 50})

    assert response.status_code == 200
    assert isinstance(response.json()["lines"], list)


def test_metrics_are_exposed(client):
    client.get("/healthz")

    response = client.get("/metrics/")

    assert response.status_code == 200
    assert "frontier_queue_size" in response.text
