"""Connection lifecycle service."""

import logging

from sqlalchemy.orm import Session

from models import Connection, Family, LedgerAccount, SyncRun
from services.exceptions import ConnectionNotFoundError

logger = logging.getLogger(__name__)


class ConnectionService:
    """Service for creating, listing and removing aggregator connections."""

    @staticmethod
    def create_connection(
        db: Session,
        family: Family,
        *,
        name: str,
        session_token: str,
        external_id: str | None = None,
        institution_id: str | None = None,
    ) -> Connection:
        """Store a connection handed over by the linking flow.

        The new connection starts ``good`` and ``idle`` and has never synced.
        """
        connection = Connection(
            family_id=family.id,
            name=name,
            session_token=session_token,
            external_id=external_id,
            institution_id=institution_id,
        )
        db.add(connection)
        db.commit()
        db.refresh(connection)
        logger.info("Connection created: %s (id=%s)", connection.name, connection.id)
        return connection

    @staticmethod
    def get_connection(db: Session, connection_id: str) -> Connection:
        """Get a connection by ID.

        Raises:
            ConnectionNotFoundError: If no such connection exists.
        """
        connection = db.get(Connection, connection_id)
        if connection is None:
            raise ConnectionNotFoundError(connection_id)
        return connection

    @staticmethod
    def list_active(db: Session) -> list[Connection]:
        """Connections that are eligible for syncing."""
        return (
            db.query(Connection)
            .filter(Connection.scheduled_for_deletion.is_(False))
            .order_by(Connection.created_at, Connection.id)
            .all()
        )

    @staticmethod
    def list_sync_runs(db: Session, connection_id: str, limit: int = 20) -> list[SyncRun]:
        """Most recent sync runs for a connection, newest first."""
        ConnectionService.get_connection(db, connection_id)
        return (
            db.query(SyncRun)
            .filter(SyncRun.connection_id == connection_id)
            .order_by(SyncRun.started_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def schedule_for_deletion(db: Session, connection_id: str) -> Connection:
        """Soft delete: hide the connection from syncing until it is destroyed."""
        connection = ConnectionService.get_connection(db, connection_id)
        connection.scheduled_for_deletion = True
        db.commit()
        logger.info("Connection scheduled for deletion: %s", connection.id)
        return connection

    @staticmethod
    def destroy(db: Session, connection_id: str) -> int:
        """Hard delete a connection with its snapshots, runs and ledger accounts.

        Returns:
            Number of ledger accounts removed along with the connection.
        """
        connection = ConnectionService.get_connection(db, connection_id)
        ledger_accounts = [
            snapshot.ledger_account
            for snapshot in connection.external_accounts
            if snapshot.ledger_account is not None
        ]

        db.delete(connection)
        for account in ledger_accounts:
            db.delete(account)
        db.commit()

        logger.info(
            "Connection destroyed: %s (%d ledger accounts removed)",
            connection_id, len(ledger_accounts),
        )
        return len(ledger_accounts)
