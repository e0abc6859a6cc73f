"""Tests for ORM models and the account kind variants."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from models import ExternalAccountSnapshot, ImportedTransaction, LedgerAccount, SyncRun
from models.account_kind import (
    CreditCard,
    Depository,
    Loan,
    OtherAsset,
    kind_from_dict,
    kind_name,
    kind_to_dict,
)
from models.sync_run import RUN_COMPLETED, RUN_FAILED, RUN_RUNNING
from models.utils import as_utc, utc_now
from tests.fixtures import create_linked_snapshot
from tests.fixtures.mocks import SAMPLE_YODLEE_ACCOUNTS


class TestAccountKind:
    def test_round_trip_through_dict(self):
        kind = Loan(subtype="mortgage", interest_rate=6.5)
        assert kind_from_dict(kind_name(kind), kind_to_dict(kind)) == kind

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="Unknown account kind"):
            kind_from_dict("Crypto", {})

    def test_unknown_fields_ignored(self):
        assert kind_from_dict("Depository", {"subtype": "savings", "apy": 4.1}) == Depository(
            subtype="savings"
        )

    def test_ledger_account_kind_property(self, db, family):
        account = LedgerAccount(family_id=family.id, name="Card", currency="USD")
        account.kind = CreditCard(limit_minor_units=500000)
        db.add(account)
        db.commit()
        db.expire_all()

        stored = db.get(LedgerAccount, account.id)
        assert stored.account_kind == "CreditCard"
        assert stored.kind == CreditCard(limit_minor_units=500000)

    def test_empty_variant(self):
        assert kind_to_dict(OtherAsset()) == {}
        assert kind_from_dict("OtherAsset", None) == OtherAsset()


class TestSnapshot:
    def test_payload_accessors(self, db, connection):
        snapshot = ExternalAccountSnapshot(
            connection_id=connection.id,
            external_account_id="2002",
            raw_payload=SAMPLE_YODLEE_ACCOUNTS[1],
        )
        assert snapshot.name == "Rewards Card"
        assert snapshot.mask == "9876"
        assert snapshot.institution_name == "Dag Site"
        assert snapshot.balance == 310.20
        assert snapshot.currency == "USD"
        assert snapshot.container == "creditCard"
        assert snapshot.account_subtype == "CREDIT"
        assert not snapshot.is_linked

    def test_unique_per_connection(self, db, connection):
        for _ in range(2):
            db.add(ExternalAccountSnapshot(
                connection_id=connection.id, external_account_id="1001", raw_payload={}
            ))
        with pytest.raises(IntegrityError):
            db.commit()


class TestImportedTransaction:
    def test_unique_per_account(self, db, connection):
        snapshot = create_linked_snapshot(db, connection, SAMPLE_YODLEE_ACCOUNTS[0])
        for _ in range(2):
            db.add(ImportedTransaction(
                ledger_account_id=snapshot.ledger_account_id,
                external_id="5001",
                amount_minor_units=-100,
                currency="USD",
                date=date(2024, 3, 1),
                description="Coffee",
            ))
        with pytest.raises(IntegrityError):
            db.commit()


class TestSyncRun:
    def test_starts_running(self, db, connection):
        run = SyncRun(connection_id=connection.id)
        db.add(run)
        db.commit()
        assert run.status == RUN_RUNNING
        assert not run.is_terminal

    def test_complete_sets_terminal_state(self, db, connection):
        run = SyncRun(connection_id=connection.id, status=RUN_RUNNING)
        now = datetime(2024, 3, 15, 12)

        run.complete(now)

        assert run.status == RUN_COMPLETED
        assert run.completed_at == now
        assert run.is_terminal

    def test_fail_records_message(self, db, connection):
        run = SyncRun(connection_id=connection.id, status=RUN_RUNNING)

        run.fail(datetime(2024, 3, 15, 12), "timed out")

        assert run.status == RUN_FAILED
        assert run.error_message == "timed out"

    def test_terminal_state_is_written_once(self, db, connection):
        run = SyncRun(connection_id=connection.id, status=RUN_RUNNING)
        run.complete(datetime(2024, 3, 15, 12))

        with pytest.raises(ValueError, match="already completed"):
            run.fail(datetime(2024, 3, 15, 13), "late failure")
        assert run.status == RUN_COMPLETED


class TestModelUtils:
    def test_as_utc_marks_naive_values(self):
        assert as_utc(datetime(2024, 3, 15, 12)) == datetime(2024, 3, 15, 12, tzinfo=timezone.utc)

    def test_as_utc_keeps_aware_values(self):
        aware = datetime(2024, 3, 15, 12, tzinfo=timezone(timedelta(hours=-5)))
        assert as_utc(aware) is aware

    def test_as_utc_passes_none(self):
        assert as_utc(None) is None

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc
