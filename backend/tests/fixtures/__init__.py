"""Test fixtures and sample data."""
import pytest
from datetime import datetime, timezone

from models import Connection, ExternalAccountSnapshot, Family, LedgerAccount
from models.account_kind import Depository
from services.account_importer import AccountImporter
from services.sync_orchestrator import SyncOrchestrator
from services.transaction_importer import TransactionImporter
from sqlalchemy.orm import Session

from tests.fixtures.mocks import SAMPLE_YODLEE_ACCOUNTS, RecordingSleep

FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    """Clock pinned to FIXED_NOW for deterministic windows."""
    return FIXED_NOW


def build_orchestrator(provider, events=None, sleep=None) -> SyncOrchestrator:
    """Orchestrator on the fixed clock with pacing recorded instead of slept."""
    return SyncOrchestrator(
        provider,
        account_importer=AccountImporter(provider, clock=fixed_clock),
        transaction_importer=TransactionImporter(
            provider,
            pacing_delay=0.5,
            sleep=sleep or RecordingSleep(),
            clock=fixed_clock,
        ),
        events=events,
        clock=fixed_clock,
        max_history_days=90,
        overlap_days=7,
        stale_after_minutes=120,
    )


def create_linked_snapshot(
    db: Session,
    connection: Connection,
    raw_payload: dict,
    balance_minor_units: int | None = None,
) -> ExternalAccountSnapshot:
    """Create a snapshot already linked to a Depository ledger account."""
    account = LedgerAccount(
        family_id=connection.family_id,
        name=raw_payload.get("accountName", "Linked Account"),
        currency="USD",
        balance_minor_units=balance_minor_units,
        external_id=str(raw_payload["id"]),
        provider="yodlee",
    )
    account.kind = Depository(subtype="checking")
    db.add(account)
    db.flush()

    snapshot = ExternalAccountSnapshot(
        connection_id=connection.id,
        external_account_id=str(raw_payload["id"]),
        ledger_account_id=account.id,
        raw_payload=raw_payload,
    )
    db.add(snapshot)
    db.commit()
    return snapshot


@pytest.fixture
def family(db: Session) -> Family:
    """Create a test family."""
    fam = Family(name="Test Family", currency="USD")
    db.add(fam)
    db.commit()
    db.refresh(fam)
    return fam


@pytest.fixture
def connection(db: Session, family: Family) -> Connection:
    """Create an idle, never-synced connection."""
    conn = Connection(
        family_id=family.id,
        name="Dag Site",
        session_token="sbMem5f1c2d3e4",
        external_id="9001",
    )
    db.add(conn)
    db.commit()
    db.refresh(conn)
    return conn


@pytest.fixture
def linked_snapshot(db: Session, connection: Connection) -> ExternalAccountSnapshot:
    """Create a snapshot for the sample checking account, already linked."""
    return create_linked_snapshot(db, connection, SAMPLE_YODLEE_ACCOUNTS[0])
