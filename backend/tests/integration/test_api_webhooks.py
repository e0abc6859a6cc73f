"""Integration tests for the aggregator webhook endpoint."""

import inspect
from unittest.mock import patch

import pytest

from models import SyncRun


@pytest.fixture
def background_session(db):
    """Run webhook background syncs on the test session."""
    with patch("api.webhooks.get_session_local", return_value=lambda: db):
        yield


def test_targeted_webhook_syncs_connection(client, db, connection, background_session):
    connection_id = connection.id
    payload = {"event": {"name": "REFRESH", "data": {"providerAccountId": 9001}}}

    response = client.post("/api/webhooks/yodlee", json=payload)

    assert response.status_code == 202
    assert response.json() == {"scheduled_connection_ids": [connection_id]}
    run = db.query(SyncRun).one()
    assert run.connection_id == connection_id
    assert run.status == "completed"


def test_untargeted_webhook_falls_back_to_all(client, db, connection, background_session, monkeypatch):
    monkeypatch.setattr("services.webhook_service.settings.WEBHOOK_FALLBACK_POLICY", "sync_all")
    connection_id = connection.id

    response = client.post("/api/webhooks/yodlee", json={"event": {"name": "DATA_UPDATES"}})

    assert response.status_code == 202
    assert response.json()["scheduled_connection_ids"] == [connection_id]


def test_untargeted_webhook_with_none_policy(client, db, connection, background_session, monkeypatch):
    monkeypatch.setattr("services.webhook_service.settings.WEBHOOK_FALLBACK_POLICY", "none")

    response = client.post("/api/webhooks/yodlee", json={"event": {"name": "DATA_UPDATES"}})

    assert response.status_code == 202
    assert response.json()["scheduled_connection_ids"] == []
    assert db.query(SyncRun).count() == 0


def test_unmatched_webhook_schedules_nothing(client, db, connection, background_session):
    payload = {"event": {"data": {"providerAccountId": 123456}}}

    response = client.post("/api/webhooks/yodlee", json=payload)

    assert response.json()["scheduled_connection_ids"] == []
    assert db.query(SyncRun).count() == 0


def test_failed_background_sync_is_recorded(
    client_with_failing_sync, db, connection, background_session
):
    payload = {"event": {"data": {"providerAccountId": 9001}}}

    response = client_with_failing_sync.post("/api/webhooks/yodlee", json=payload)

    assert response.status_code == 202
    assert db.query(SyncRun).one().status == "failed"


def test_invalid_json_rejected(client, db):
    response = client.post(
        "/api/webhooks/yodlee",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_empty_body_rejected(client, db):
    response = client.post(
        "/api/webhooks/yodlee", content=b"", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


def test_handler_runs_in_threadpool():
    """The endpoint queries the database, so it must not block the event loop."""
    from api.webhooks import yodlee_webhook

    assert not inspect.iscoroutinefunction(yodlee_webhook)
