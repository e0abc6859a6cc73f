"""Integration tests for connection sync API endpoints."""

from datetime import timedelta

from models import Connection, ImportedTransaction, LedgerAccount, SyncRun
from models.connection import STATUS_REQUIRES_UPDATE, SYNC_STATE_RUNNING
from tests.fixtures import FIXED_NOW


def test_sync_returns_completed_run(client, db, connection):
    """Sync imports accounts and transactions and returns the run."""
    response = client.post(f"/api/connections/{connection.id}/sync")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "completed"
    assert data["connection_id"] == connection.id
    assert data["accounts_imported"] == 2
    assert data["transactions_imported"] == 3
    assert data["window_start"] == "2023-12-16"
    assert data["window_end"] == "2024-03-15"
    assert data["error_message"] is None

    assert db.query(LedgerAccount).count() == 2
    assert db.query(ImportedTransaction).count() == 3


def test_repeated_sync_is_idempotent(client, db, connection):
    """A second sync succeeds and imports nothing new."""
    client.post(f"/api/connections/{connection.id}/sync")

    response = client.post(f"/api/connections/{connection.id}/sync")
    assert response.status_code == 200
    assert response.json()["transactions_imported"] == 0
    assert db.query(ImportedTransaction).count() == 3


def test_sync_unknown_connection(client, db):
    response = client.post("/api/connections/does-not-exist/sync")
    assert response.status_code == 404


def test_sync_already_running(client, db, connection):
    """An in-flight sync makes a second trigger return 409."""
    connection.sync_state = SYNC_STATE_RUNNING
    connection.sync_started_at = FIXED_NOW
    db.commit()

    response = client.post(f"/api/connections/{connection.id}/sync")
    assert response.status_code == 409
    assert db.query(SyncRun).count() == 0


def test_sync_takes_over_stale_claim(client, db, connection):
    """A claim left behind by a dead worker does not block syncing forever."""
    connection.sync_state = SYNC_STATE_RUNNING
    connection.sync_started_at = FIXED_NOW - timedelta(days=2)
    db.add(SyncRun(connection_id=connection.id, started_at=FIXED_NOW - timedelta(days=2)))
    db.commit()

    response = client.post(f"/api/connections/{connection.id}/sync")

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert sorted(r.status for r in db.query(SyncRun).all()) == ["completed", "failed"]


def test_sync_provider_failure(client_with_failing_sync, db, connection):
    """Provider failure returns 502 and flags the connection."""
    connection_id = connection.id

    response = client_with_failing_sync.post(f"/api/connections/{connection_id}/sync")
    assert response.status_code == 502
    assert "Yodlee API unavailable" not in response.json()["detail"]

    db.expire_all()
    assert db.get(Connection, connection_id).status == STATUS_REQUIRES_UPDATE
    run = db.query(SyncRun).one()
    assert run.status == "failed"
    assert db.query(LedgerAccount).count() == 0


def test_list_sync_runs(client, db, connection):
    client.post(f"/api/connections/{connection.id}/sync")
    client.post(f"/api/connections/{connection.id}/sync")

    response = client.get(f"/api/connections/{connection.id}/sync-runs")
    assert response.status_code == 200
    runs = response.json()
    assert len(runs) == 2
    assert all(r["status"] == "completed" for r in runs)


def test_list_sync_runs_after_failure(client_with_failing_sync, db, connection):
    client_with_failing_sync.post(f"/api/connections/{connection.id}/sync")

    response = client_with_failing_sync.get(f"/api/connections/{connection.id}/sync-runs")
    assert response.status_code == 200
    runs = response.json()
    assert len(runs) == 1
    assert runs[0]["status"] == "failed"
    assert runs[0]["error_message"]


def test_list_sync_runs_unknown_connection(client, db):
    response = client.get("/api/connections/missing/sync-runs")
    assert response.status_code == 404
