"""Tests for webhook targeting."""

from datetime import timedelta

from models import Connection, ExternalAccountSnapshot
from models.connection import SYNC_STATE_RUNNING
from tests.fixtures import FIXED_NOW
from services.webhook_service import connections_for_webhook, extract_target_ids


def refresh_event(**data) -> dict:
    return {"event": {"name": "REFRESH", "data": data}}


def add_connection(db, family, name, external_id=None, **kwargs) -> Connection:
    conn = Connection(
        family_id=family.id,
        name=name,
        session_token=f"session-{name}",
        external_id=external_id,
        **kwargs,
    )
    db.add(conn)
    db.commit()
    return conn


class TestExtractTargetIds:
    def test_scalar_and_list_ids(self):
        assert extract_target_ids(refresh_event(providerAccountId=9001)) == (["9001"], [])
        assert extract_target_ids(
            refresh_event(providerAccountId=[1, 2], accountIds=[1001])
        ) == (["1", "2"], ["1001"])

    def test_malformed_payloads(self):
        assert extract_target_ids(None) == ([], [])
        assert extract_target_ids(["not", "a", "dict"]) == ([], [])
        assert extract_target_ids({"event": "REFRESH"}) == ([], [])
        assert extract_target_ids({"event": {"data": None}}) == ([], [])


class TestConnectionsForWebhook:
    def test_matches_provider_account_id(self, db, family, connection):
        add_connection(db, family, "Other Bank", external_id="9002")

        targets = connections_for_webhook(db, refresh_event(providerAccountId=9001))

        assert [c.id for c in targets] == [connection.id]

    def test_matches_snapshot_account_id(self, db, family, connection):
        other = add_connection(db, family, "Other Bank", external_id="9002")
        db.add(ExternalAccountSnapshot(
            connection_id=other.id, external_account_id="3003", raw_payload={}
        ))
        db.commit()

        targets = connections_for_webhook(db, refresh_event(accountIds=["3003"]))

        assert [c.id for c in targets] == [other.id]

    def test_excludes_syncing_connections(self, db, family, connection):
        connection.sync_state = SYNC_STATE_RUNNING
        connection.sync_started_at = FIXED_NOW - timedelta(minutes=10)
        db.commit()

        assert connections_for_webhook(
            db, refresh_event(providerAccountId=9001), now=FIXED_NOW
        ) == []

    def test_includes_connections_with_stale_claims(self, db, family, connection):
        connection.sync_state = SYNC_STATE_RUNNING
        connection.sync_started_at = FIXED_NOW - timedelta(days=2)
        db.commit()

        targets = connections_for_webhook(
            db, refresh_event(providerAccountId=9001), now=FIXED_NOW
        )

        assert [c.id for c in targets] == [connection.id]

    def test_excludes_connections_scheduled_for_deletion(self, db, family, connection):
        connection.scheduled_for_deletion = True
        db.commit()

        assert connections_for_webhook(db, refresh_event(providerAccountId=9001)) == []

    def test_unmatched_target_does_not_fall_back(self, db, family, connection):
        assert connections_for_webhook(
            db, refresh_event(providerAccountId=1), fallback_policy="sync_all"
        ) == []

    def test_untargeted_sync_all(self, db, family, connection):
        other = add_connection(db, family, "Other Bank")
        add_connection(db, family, "Going Away", scheduled_for_deletion=True)
        add_connection(
            db, family, "Busy", sync_state=SYNC_STATE_RUNNING, sync_started_at=FIXED_NOW
        )

        targets = connections_for_webhook(
            db, {"event": {}}, fallback_policy="sync_all", now=FIXED_NOW
        )

        assert {c.id for c in targets} == {connection.id, other.id}

    def test_untargeted_none_policy(self, db, family, connection):
        assert connections_for_webhook(db, {"event": {}}, fallback_policy="none") == []

    def test_policy_defaults_to_settings(self, db, family, connection, monkeypatch):
        monkeypatch.setattr("services.webhook_service.settings.WEBHOOK_FALLBACK_POLICY", "none")

        assert connections_for_webhook(db, {}) == []
