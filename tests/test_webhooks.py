"""
Webhook endpoint tests against the FastAPI app with a stub engine.
"""

from pathlib import Path
import hashlib
import hmac
import json
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zotion.api.app import app
from zotion.webhooks import webhook_server

SECRET = "test-secret"
ENDPOINT = "/webhooks/zotero"


class StubNotifier:
    def __init__(self):
        self.calls = []

    def notify(self, event, object_type, ids):
        self.calls.append((event, object_type, list(ids)))
        if event == "add":
            return [value.split("-", 1)[1] for value in ids]
        return []


class StubEngine:
    def __init__(self, connections=None):
        self.notifier = StubNotifier()
        self.connections = connections or {"notion": True, "zotero": True}

    async def check_connections(self):
        return dict(self.connections)

    def status(self):
        return {"running": False, "pending": 0, "last_failure": None}


def _sign(body: bytes) -> str:
    digest = hmac.new(SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"Bearer sha256={digest}"


def _post(client, payload, *, signature=None):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json", "Authorization": signature or _sign(body)}
    return client.post(ENDPOINT, content=body, headers=headers)


@pytest.fixture
def engine():
    stub = StubEngine()
    app.state.engine = stub
    app.state.webhook_secret = SECRET
    webhook_server.recent_events.clear()
    yield stub
    if hasattr(app.state, "engine"):
        del app.state.engine
    del app.state.webhook_secret


@pytest.fixture
def client(engine):
    # Not entered as a context manager, so the startup hook does not build a live engine
    return TestClient(app)


def test_signed_notification_is_enqueued(client, engine):
    response = _post(client, {"event": "add", "type": "collection-item", "ids": ["COLL-AAA"], "id": "evt-1"})

    assert response.status_code == 202
    assert response.json()["enqueued"] == ["AAA"]
    assert engine.notifier.calls == [("add", "collection-item", ["COLL-AAA"])]


def test_invalid_signature_rejected(client, engine):
    response = _post(
        client,
        {"event": "add", "type": "collection-item", "ids": ["COLL-AAA"]},
        signature="Bearer sha256=deadbeef",
    )

    assert response.status_code == 401
    assert engine.notifier.calls == []


def test_invalid_json_rejected(client):
    response = _post(client, b"{not json")
    assert response.status_code == 400


def test_missing_fields_rejected(client):
    response = _post(client, {"event": "add", "ids": []})
    assert response.status_code == 400


def test_duplicate_event_acknowledged_once(client, engine):
    payload = {"event": "add", "type": "collection-item", "ids": ["COLL-AAA"], "id": "evt-dup"}

    first = _post(client, payload)
    second = _post(client, payload)

    assert first.status_code == 202
    assert second.status_code == 200
    assert second.json()["status"] == "duplicate"
    assert len(engine.notifier.calls) == 1


def test_ignored_notification_returns_accepted(client):
    response = _post(client, {"event": "modify", "type": "item", "ids": ["AAA"]})

    assert response.status_code == 202
    assert response.json()["status"] == "ignored"


def test_health_probes(client):
    assert client.get("/health/live").json()["status"] == "alive"
    assert client.get("/health/ready").json()["status"] == "ready"


def test_event_retried_after_engine_unavailable_is_accepted(client, engine):
    payload = {"event": "add", "type": "collection-item", "ids": ["COLL-AAA"], "id": "evt-retry"}

    del app.state.engine
    first = _post(client, payload)
    app.state.engine = engine
    retry = _post(client, payload)

    assert first.status_code == 503
    assert retry.status_code == 202
    assert retry.json()["status"] == "accepted"
    assert engine.notifier.calls == [("add", "collection-item", ["COLL-AAA"])]


def test_readiness_reports_failed_backend(client, engine):
    engine.connections = {"notion": True, "zotero": False}

    body = client.get("/health/ready").json()

    assert body["status"] == "not ready"
    assert body["services"] == {"notion": True, "zotero": False}
