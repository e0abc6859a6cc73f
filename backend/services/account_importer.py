"""Account importer - upserts aggregator accounts and links ledger accounts."""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from integrations.exceptions import ProviderError
from integrations.parsing_utils import parse_decimal, to_minor_units
from integrations.provider_protocol import AggregatorProvider, RawAccount
from models import Connection, ExternalAccountSnapshot, LedgerAccount
from models.utils import utc_now
from services.category_mapper import TypeMapper

logger = logging.getLogger(__name__)


class AccountImporter:
    """Imports the accounts of one connection.

    For every raw account the provider reports:

    1. the ``ExternalAccountSnapshot`` keyed by (connection, external id)
       is created or has its payload overwritten;
    2. an unlinked snapshot gets a new ``LedgerAccount`` built from the
       payload; a linked one only has its metadata refreshed.

    Each account runs in its own savepoints, so one bad payload is logged
    and skipped without affecting its siblings.
    """

    def __init__(
        self,
        provider: AggregatorProvider,
        type_mapper: TypeMapper | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._provider = provider
        self._type_mapper = type_mapper or TypeMapper()
        self._clock = clock

    def import_accounts(self, db: Session, connection: Connection) -> int:
        """Fetch and persist all accounts for a connection.

        Provider errors from the fetch propagate; per-account failures
        are logged and skipped.

        Returns:
            Number of snapshots created or refreshed.
        """
        remote_accounts = self._provider.fetch_accounts(connection.session_token)
        if not remote_accounts:
            logger.info("Connection %s: provider returned no accounts", connection.id)
            return 0

        now = self._clock()
        imported = 0
        new_links = 0
        failed = 0

        for raw in remote_accounts:
            external_id = raw.get("id")
            if external_id is None or str(external_id) == "":
                logger.warning(
                    "Connection %s: skipping account payload without an id", connection.id
                )
                failed += 1
                continue
            external_id = str(external_id)

            try:
                with db.begin_nested():
                    snapshot = self._upsert_snapshot(db, connection, external_id, raw, now)
            except Exception as e:
                logger.error(
                    "Connection %s: failed to store account %s: %s",
                    connection.id, external_id, e, exc_info=True,
                )
                failed += 1
                continue
            imported += 1

            try:
                with db.begin_nested():
                    created = self._link_ledger_account(db, connection, snapshot, now)
                if created:
                    new_links += 1
            except Exception as e:
                logger.error(
                    "Connection %s: failed to map account %s to a ledger account: %s",
                    connection.id, external_id, e, exc_info=True,
                )
                failed += 1

        db.flush()
        logger.info(
            "Connection %s: accounts imported (%d stored, %d newly linked, %d failed)",
            connection.id, imported, new_links, failed,
        )

        self._store_institution(db, connection, remote_accounts)
        return imported

    @staticmethod
    def _find_snapshot(
        db: Session, connection_id: str, external_id: str
    ) -> ExternalAccountSnapshot | None:
        return (
            db.query(ExternalAccountSnapshot)
            .filter_by(connection_id=connection_id, external_account_id=external_id)
            .first()
        )

    def _upsert_snapshot(
        self,
        db: Session,
        connection: Connection,
        external_id: str,
        raw: RawAccount,
        now: datetime,
    ) -> ExternalAccountSnapshot:
        snapshot = self._find_snapshot(db, connection.id, external_id)
        if snapshot is None:
            try:
                with db.begin_nested():
                    snapshot = ExternalAccountSnapshot(
                        connection_id=connection.id,
                        external_account_id=external_id,
                        raw_payload=raw,
                        last_synced_at=now,
                    )
                    db.add(snapshot)
                    db.flush()
                return snapshot
            except IntegrityError:
                # Another sync of this connection inserted the row first
                logger.info(
                    "Connection %s: account %s inserted concurrently, updating instead",
                    connection.id, external_id,
                )
                snapshot = self._find_snapshot(db, connection.id, external_id)
                if snapshot is None:
                    raise

        snapshot.raw_payload = raw
        snapshot.last_synced_at = now
        db.flush()
        return snapshot

    def _link_ledger_account(
        self,
        db: Session,
        connection: Connection,
        snapshot: ExternalAccountSnapshot,
        now: datetime,
    ) -> bool:
        """Create a ledger account for an unlinked snapshot, or refresh metadata.

        Balances on an already linked account are left to balance
        processing; only mask, currency, sync time and error fields change.

        Returns:
            True if a new ledger account was created.
        """
        account = snapshot.ledger_account
        if account is not None:
            account.mask = snapshot.mask
            if snapshot.currency:
                account.currency = snapshot.currency
            account.last_synced_at = now
            account.sync_error = None
            account.sync_error_at = None
            db.flush()
            return False

        account = self.build_ledger_account(connection, snapshot, now)
        db.add(account)
        db.flush()
        snapshot.ledger_account_id = account.id
        snapshot.ledger_account = account
        db.flush()
        logger.info(
            "Connection %s: linked account %s to new %s ledger account %s",
            connection.id, snapshot.external_account_id, account.account_kind, account.id,
        )
        return True

    def build_ledger_account(
        self,
        connection: Connection,
        snapshot: ExternalAccountSnapshot,
        now: datetime,
    ) -> LedgerAccount:
        """Construct (but do not persist) the ledger account for a snapshot.

        Raises:
            ValueError: If the payload has no account name.
        """
        name = snapshot.name
        if not name:
            raise ValueError(
                f"Account {snapshot.external_account_id} has no accountName"
            )

        balance = parse_decimal(snapshot.balance)
        account = LedgerAccount(
            family_id=connection.family_id,
            name=name,
            mask=snapshot.mask,
            institution_name=snapshot.institution_name or connection.institution_name,
            currency=snapshot.currency or connection.family.currency,
            balance_minor_units=to_minor_units(balance) if balance is not None else None,
            external_id=snapshot.external_account_id,
            provider=self._provider.provider_name,
            notes="Imported from Yodlee",
            last_synced_at=now,
        )
        account.kind = self._type_mapper.build_account_kind(snapshot.payload)
        return account

    def _store_institution(
        self, db: Session, connection: Connection, remote_accounts: list[RawAccount]
    ) -> None:
        """Record institution details on the connection (best-effort)."""
        institution_id = connection.institution_id
        if not institution_id:
            institution_id = next(
                (str(raw["providerId"]) for raw in remote_accounts if raw.get("providerId")),
                None,
            )
        if not institution_id:
            return

        try:
            institution = self._provider.fetch_institution(str(institution_id))
        except ProviderError as e:
            logger.warning(
                "Connection %s: institution lookup failed for %s: %s",
                connection.id, institution_id, e,
            )
            return
        if not institution:
            return

        connection.institution_id = str(institution.get("id") or institution_id)
        connection.institution_name = institution.get("name") or connection.institution_name
        connection.institution_url = (
            institution.get("baseUrl") or institution.get("loginUrl") or connection.institution_url
        )
        connection.institution_color = institution.get("primaryColor") or connection.institution_color
        connection.raw_institution_payload = institution
        db.flush()
