"""Sync orchestrator - runs one full sync cycle for a connection."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from config import settings
from integrations.provider_protocol import AggregatorProvider
from integrations.yodlee_client import get_yodlee_client
from models import Connection, SyncRun
from models.connection import STATUS_GOOD, STATUS_REQUIRES_UPDATE, SYNC_STATE_IDLE, SYNC_STATE_RUNNING
from models.sync_run import RUN_RUNNING
from models.utils import as_utc, utc_now
from services.account_importer import AccountImporter
from services.balance_service import BalanceService
from services.category_mapper import CategoryMapper
from services.exceptions import ConnectionNotFoundError
from services.sync_events import LoggingSyncEvents, SyncEventHandler
from services.transaction_importer import TransactionImporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncWindow:
    """Inclusive date range of transactions requested from the provider."""

    start: date
    end: date


def compute_sync_window(
    last_synced_at: Optional[datetime],
    today: date,
    max_history_days: int = 90,
    overlap_days: int = 7,
) -> SyncWindow:
    """Work out the transaction window for the next sync.

    A first sync reaches back ``max_history_days``. Later syncs start
    ``overlap_days`` before the previous sync so late-posting transactions
    are picked up, but never further back than ``max_history_days``.
    """
    floor = today - timedelta(days=max_history_days)
    if last_synced_at is None:
        return SyncWindow(start=floor, end=today)
    last_day = as_utc(last_synced_at).astimezone(timezone.utc).date()
    start = max(last_day - timedelta(days=overlap_days), floor)
    return SyncWindow(start=start, end=today)


def claimable_filter(now: datetime, stale_after_minutes: Optional[int] = None):
    """SQL condition for connections a new sync may claim.

    A connection is claimable when idle, or when its running claim has no
    timestamp or is older than ``stale_after_minutes`` (the worker that
    took it is assumed dead).
    """
    if stale_after_minutes is None:
        stale_after_minutes = settings.SYNC_STALE_AFTER_MINUTES
    cutoff = now - timedelta(minutes=stale_after_minutes)
    return or_(
        Connection.sync_state == SYNC_STATE_IDLE,
        Connection.sync_started_at.is_(None),
        Connection.sync_started_at < cutoff,
    )


def is_syncing(
    db: Session,
    connection_id: str,
    now: Optional[datetime] = None,
    stale_after_minutes: Optional[int] = None,
) -> bool:
    """Whether a live (non-stale) sync currently holds the connection."""
    state = (
        db.query(Connection.sync_state)
        .filter(Connection.id == connection_id)
        .scalar()
    )
    if state != SYNC_STATE_RUNNING:
        return False
    claimable = (
        db.query(Connection.id)
        .filter(
            Connection.id == connection_id,
            claimable_filter(now or utc_now(), stale_after_minutes),
        )
        .first()
    )
    return claimable is None


class SyncOrchestrator:
    """Drives the accounts -> transactions -> balances sequence.

    At most one sync runs per connection. The claim is a conditional
    UPDATE on ``connections.sync_state`` committed before any provider
    call, so a second trigger arriving mid-sync sees ``running`` and
    backs off without creating a SyncRun. Claims expire after
    ``stale_after_minutes``; taking over an expired claim fails the
    SyncRun its worker left behind.
    """

    def __init__(
        self,
        provider: AggregatorProvider,
        account_importer: Optional[AccountImporter] = None,
        transaction_importer: Optional[TransactionImporter] = None,
        events: Optional[SyncEventHandler] = None,
        clock: Callable[[], datetime] = utc_now,
        max_history_days: Optional[int] = None,
        overlap_days: Optional[int] = None,
        stale_after_minutes: Optional[int] = None,
    ):
        self._provider = provider
        self._account_importer = account_importer or AccountImporter(provider, clock=clock)
        self._transaction_importer = transaction_importer or TransactionImporter(
            provider, clock=clock
        )
        self._events = events or LoggingSyncEvents()
        self._clock = clock
        self._max_history_days = (
            settings.SYNC_MAX_HISTORY_DAYS if max_history_days is None else max_history_days
        )
        self._overlap_days = settings.SYNC_OVERLAP_DAYS if overlap_days is None else overlap_days
        self._stale_after_minutes = (
            settings.SYNC_STALE_AFTER_MINUTES if stale_after_minutes is None else stale_after_minutes
        )

    def close(self) -> None:
        """Release the provider's resources, if it holds any."""
        close = getattr(self._provider, "close", None)
        if close is not None:
            close()

    def run_sync(self, db: Session, connection_id: str) -> Optional[SyncRun]:
        """Run one sync cycle.

        Returns:
            The finished SyncRun, or None if another live (non-stale) sync
            holds the connection.

        Raises:
            ConnectionNotFoundError: If the connection does not exist.
            ProviderError: If the provider fails; the run is recorded as
                failed and the connection flagged before re-raising.
        """
        connection = db.get(Connection, connection_id)
        if connection is None:
            raise ConnectionNotFoundError(connection_id)

        if not self._claim(db, connection_id):
            logger.info("Connection %s is already syncing, skipping", connection_id)
            return None

        try:
            return self._run(db, connection)
        finally:
            self._release(db, connection_id)

    def _claim(self, db: Session, connection_id: str) -> bool:
        now = self._clock()
        result = db.execute(
            update(Connection)
            .where(
                Connection.id == connection_id,
                claimable_filter(now, self._stale_after_minutes),
            )
            .values(sync_state=SYNC_STATE_RUNNING, sync_started_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.commit()
            return False

        # Holding the claim means no other worker is running; any run still
        # marked running was abandoned by a dead worker
        abandoned = (
            db.query(SyncRun)
            .filter(SyncRun.connection_id == connection_id, SyncRun.status == RUN_RUNNING)
            .all()
        )
        for run in abandoned:
            logger.warning(
                "Connection %s: failing sync run %s abandoned since %s",
                connection_id, run.id, run.started_at,
            )
            run.fail(now, "Sync abandoned: the worker stopped before finishing")
        db.commit()
        return True

    @staticmethod
    def _release(db: Session, connection_id: str) -> None:
        # Anything still pending belongs to an interrupted run
        db.rollback()
        try:
            db.execute(
                update(Connection)
                .where(Connection.id == connection_id)
                .values(sync_state=SYNC_STATE_IDLE, sync_started_at=None)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except Exception:
            logger.error(
                "Failed to release sync state for connection %s", connection_id, exc_info=True
            )
            db.rollback()
            raise

    def _run(self, db: Session, connection: Connection) -> SyncRun:
        started_at = self._clock()
        window = compute_sync_window(
            connection.last_synced_at,
            started_at.date(),
            max_history_days=self._max_history_days,
            overlap_days=self._overlap_days,
        )
        run = SyncRun(
            connection_id=connection.id,
            started_at=started_at,
            window_start=window.start,
            window_end=window.end,
        )
        db.add(run)
        db.commit()
        logger.info(
            "Sync run %s started for connection %s (window %s to %s)",
            run.id, connection.id, window.start, window.end,
        )

        try:
            accounts_imported = self._account_importer.import_accounts(db, connection)
            tx_result = self._transaction_importer.import_transactions(
                db, connection, window.start, window.end
            )
            linked_accounts = BalanceService.process_connection(db, connection, window.end)

            for account in linked_accounts:
                self._events.account_imported(account.id)
            if connection.family.auto_categorize_enabled and tx_result.transaction_ids:
                self._events.transactions_imported(tx_result.transaction_ids)

            finished_at = self._clock()
            connection.last_synced_at = finished_at
            connection.status = STATUS_GOOD
            run.accounts_imported = accounts_imported
            run.transactions_imported = tx_result.imported_count
            run.complete(finished_at)
            db.commit()
        except BaseException as e:
            # Uncommitted import work is discarded; the next run re-imports it.
            # Interrupts land here too so the run still gets a terminal state.
            db.rollback()
            logger.error(
                "Sync run %s for connection %s failed: %s",
                run.id, connection.id, e, exc_info=True,
            )
            run.fail(self._clock(), str(e) or type(e).__name__)
            connection.status = STATUS_REQUIRES_UPDATE
            db.commit()
            raise

        logger.info(
            "Sync run %s completed for connection %s: %d accounts, %d new transactions",
            run.id, connection.id, run.accounts_imported, run.transactions_imported,
        )
        return run


def create_orchestrator(
    provider: Optional[AggregatorProvider] = None,
    events: Optional[SyncEventHandler] = None,
) -> SyncOrchestrator:
    """Wire an orchestrator against Yodlee using the configured settings."""
    provider = provider or get_yodlee_client()
    category_mapper = CategoryMapper.from_settings(settings.CATEGORY_MAP_PATH)
    return SyncOrchestrator(
        provider,
        transaction_importer=TransactionImporter(provider, category_mapper=category_mapper),
        events=events,
    )
