"""Transaction importer - fetches, dedupes and persists aggregator transactions."""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from integrations.parsing_utils import amount_from_money, parse_iso_date, to_minor_units
from integrations.provider_protocol import AggregatorProvider, RawTransaction
from models import Connection, ExternalAccountSnapshot, ImportedTransaction, LedgerAccount, Merchant
from models.utils import utc_now
from services.category_mapper import CategoryMapper

logger = logging.getLogger(__name__)

UNKNOWN_DESCRIPTION = "Unknown Transaction"


@dataclass
class TransactionImportResult:
    """Outcome of importing transactions for one connection."""

    imported_count: int = 0
    transaction_ids: list[str] = field(default_factory=list)
    skipped_count: int = 0
    failed_count: int = 0
    accounts_processed: int = 0


# ---------------------------------------------------------------------------
# Payload normalization
# ---------------------------------------------------------------------------


def normalize_amount(raw: RawTransaction) -> int:
    """Signed amount in minor units: DEBIT is an outflow (negative).

    Yodlee reports magnitudes with a separate ``baseType``; the sign of
    the raw number is ignored. Missing or unparseable amounts become 0.
    """
    amount = amount_from_money(raw.get("amount"))
    if amount is None:
        logger.debug("Transaction %s has no usable amount; using 0", raw.get("id"))
        return 0
    minor_units = abs(to_minor_units(amount))
    if str(raw.get("baseType") or "").upper() == "DEBIT":
        return -minor_units
    return minor_units


def parse_transaction_date(raw: RawTransaction, today: date) -> date:
    """Posting date, falling back to ``today`` when missing or unparseable."""
    value = raw.get("date") or raw.get("transactionDate")
    if not value:
        return today
    parsed = parse_iso_date(value)
    if parsed is None:
        logger.warning(
            "Invalid date format for transaction %s: %r; using %s",
            raw.get("id"), value, today,
        )
        return today
    return parsed


def _description_parts(raw: RawTransaction) -> tuple[str | None, str | None]:
    description = raw.get("description")
    if isinstance(description, dict):
        simple = (description.get("simple") or "").strip() or None
        original = (description.get("original") or "").strip() or None
        return simple, original
    if isinstance(description, str) and description.strip():
        return None, description.strip()
    return None, None


def extract_description(raw: RawTransaction) -> str:
    """Simple description, then original, then a fixed placeholder."""
    simple, original = _description_parts(raw)
    return simple or original or UNKNOWN_DESCRIPTION


def extract_notes(raw: RawTransaction) -> str | None:
    _, original = _description_parts(raw)
    parts = [
        original,
        raw.get("memo"),
        f"Check #{raw['checkNumber']}" if raw.get("checkNumber") else None,
    ]
    notes = "\n".join(str(part) for part in parts if part)
    return notes or None


def extract_merchant_name(raw: RawTransaction) -> str | None:
    """Merchant name from the payload, falling back to the simple description."""
    merchant = raw.get("merchant")
    if isinstance(merchant, dict):
        merchant = merchant.get("name")
    if isinstance(merchant, str) and merchant.strip():
        return merchant.strip()
    simple, _ = _description_parts(raw)
    return simple


def extract_category_id(raw: RawTransaction):
    category = raw.get("category")
    if isinstance(category, dict):
        return category.get("id")
    return raw.get("categoryId")


def extract_currency(raw: RawTransaction) -> str | None:
    amount = raw.get("amount")
    if isinstance(amount, dict):
        return amount.get("currency") or None
    return None


# ---------------------------------------------------------------------------
# Importer
# ---------------------------------------------------------------------------


class TransactionImporter:
    """Imports transactions for the linked accounts of a connection.

    Fetches run one account at a time with ``pacing_delay`` seconds between
    them. Each new transaction is written in its own savepoint; a failure
    is counted and logged without touching its siblings.
    """

    def __init__(
        self,
        provider: AggregatorProvider,
        category_mapper: CategoryMapper | None = None,
        pacing_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._provider = provider
        self._category_mapper = category_mapper or CategoryMapper()
        self._pacing_delay = (
            settings.SYNC_RATE_LIMIT_DELAY if pacing_delay is None else pacing_delay
        )
        self._sleep = sleep
        self._clock = clock

    def import_transactions(
        self,
        db: Session,
        connection: Connection,
        from_date: date,
        to_date: date,
    ) -> TransactionImportResult:
        """Import transactions dated within ``[from_date, to_date]``.

        Only snapshots linked to a ledger account are processed. Provider
        errors from a fetch propagate to the caller.
        """
        linked = (
            db.query(ExternalAccountSnapshot)
            .filter(
                ExternalAccountSnapshot.connection_id == connection.id,
                ExternalAccountSnapshot.ledger_account_id.isnot(None),
            )
            .order_by(ExternalAccountSnapshot.created_at, ExternalAccountSnapshot.id)
            .all()
        )

        result = TransactionImportResult()
        if not linked:
            logger.info("Connection %s: no linked accounts, skipping transactions", connection.id)
            return result

        today = self._clock().date()
        for index, snapshot in enumerate(linked):
            if index > 0 and self._pacing_delay > 0:
                self._sleep(self._pacing_delay)

            remote = self._provider.fetch_transactions(
                connection.session_token, from_date, to_date
            )
            account_transactions = [
                tx for tx in remote
                if str(tx.get("accountId")) == snapshot.external_account_id
            ]
            logger.info(
                "Connection %s: %d of %d transactions belong to account %s",
                connection.id, len(account_transactions), len(remote),
                snapshot.external_account_id,
            )
            self._import_account_transactions(
                db, connection, snapshot.ledger_account, account_transactions, today, result
            )
            result.accounts_processed += 1

        logger.info(
            "Connection %s: transactions imported (%d new, %d existing, %d failed)",
            connection.id, result.imported_count, result.skipped_count, result.failed_count,
        )
        return result

    def _import_account_transactions(
        self,
        db: Session,
        connection: Connection,
        account: LedgerAccount,
        transactions: list[RawTransaction],
        today: date,
        result: TransactionImportResult,
    ) -> None:
        db.flush()
        existing_ids = self._existing_external_ids(db, account.id)

        for raw in transactions:
            external_id = raw.get("id")
            if external_id is None or str(external_id) == "":
                logger.warning(
                    "Account %s: skipping transaction payload without an id", account.id
                )
                result.failed_count += 1
                continue
            external_id = str(external_id)

            if external_id in existing_ids:
                result.skipped_count += 1
                continue

            try:
                with db.begin_nested():
                    transaction = self._build_transaction(db, connection, account, external_id, raw, today)
                    db.add(transaction)
                    db.flush()
            except IntegrityError as e:
                if not self._transaction_exists(db, account.id, external_id):
                    logger.error(
                        "Account %s: transaction %s violates a constraint: %s",
                        account.id, external_id, e.orig,
                    )
                    result.failed_count += 1
                    continue
                # Already written by an overlapping sync of the same window
                logger.info(
                    "Account %s: transaction %s already imported concurrently",
                    account.id, external_id,
                )
                existing_ids.add(external_id)
                result.skipped_count += 1
                continue
            except Exception as e:
                logger.error(
                    "Account %s: failed to import transaction %s: %s",
                    account.id, external_id, e, exc_info=True,
                )
                result.failed_count += 1
                continue

            existing_ids.add(external_id)
            result.imported_count += 1
            result.transaction_ids.append(transaction.id)

    @staticmethod
    def _existing_external_ids(db: Session, ledger_account_id: str) -> set[str]:
        return set(
            row[0]
            for row in db.query(ImportedTransaction.external_id)
            .filter(ImportedTransaction.ledger_account_id == ledger_account_id)
            .all()
        )

    @staticmethod
    def _transaction_exists(db: Session, ledger_account_id: str, external_id: str) -> bool:
        return (
            db.query(ImportedTransaction.id)
            .filter(
                ImportedTransaction.ledger_account_id == ledger_account_id,
                ImportedTransaction.external_id == external_id,
            )
            .first()
            is not None
        )

    def _build_transaction(
        self,
        db: Session,
        connection: Connection,
        account: LedgerAccount,
        external_id: str,
        raw: RawTransaction,
        today: date,
    ) -> ImportedTransaction:
        merchant_name = extract_merchant_name(raw)
        merchant = (
            self.find_or_create_merchant(db, account.family_id, merchant_name)
            if merchant_name
            else None
        )
        return ImportedTransaction(
            ledger_account_id=account.id,
            external_id=external_id,
            amount_minor_units=normalize_amount(raw),
            currency=extract_currency(raw) or account.currency,
            date=parse_transaction_date(raw, today),
            description=extract_description(raw),
            notes=extract_notes(raw),
            category=self._category_mapper.map_category(extract_category_id(raw)),
            merchant_id=merchant.id if merchant else None,
            provider=self._provider.provider_name,
            raw_payload=raw,
        )

    @staticmethod
    def find_or_create_merchant(db: Session, family_id: str, name: str) -> Merchant:
        """Exact-name merchant lookup within a family, creating it if absent."""
        merchant = db.query(Merchant).filter_by(family_id=family_id, name=name).first()
        if merchant:
            return merchant
        try:
            with db.begin_nested():
                merchant = Merchant(family_id=family_id, name=name)
                db.add(merchant)
                db.flush()
        except IntegrityError:
            merchant = db.query(Merchant).filter_by(family_id=family_id, name=name).one()
        return merchant
