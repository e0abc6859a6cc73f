"""Balance processing - applies reported balances to linked ledger accounts."""

import logging
from datetime import date

from sqlalchemy.orm import Session

from integrations.parsing_utils import parse_decimal, to_minor_units
from models import AccountBalance, Connection, ExternalAccountSnapshot, LedgerAccount

logger = logging.getLogger(__name__)


class BalanceService:
    """Copies snapshot balances onto ledger accounts and daily balance rows.

    This is the only place that overwrites ``LedgerAccount.balance_minor_units``
    for an already linked account; the account importer never does.
    """

    @staticmethod
    def process_connection(db: Session, connection: Connection, today: date) -> list[LedgerAccount]:
        """Apply the latest balances for every linked account of a connection.

        Snapshots without a reported balance are left untouched.

        Returns:
            The linked ledger accounts, whether or not their balance changed.
        """
        linked = (
            db.query(ExternalAccountSnapshot)
            .filter(
                ExternalAccountSnapshot.connection_id == connection.id,
                ExternalAccountSnapshot.ledger_account_id.isnot(None),
            )
            .all()
        )

        accounts = []
        for snapshot in linked:
            account = snapshot.ledger_account
            accounts.append(account)
            balance = parse_decimal(snapshot.balance)
            if balance is None:
                continue
            BalanceService.record_balance(db, account, to_minor_units(balance), today)

        db.flush()
        logger.info(
            "Connection %s: balances processed for %d linked accounts",
            connection.id, len(accounts),
        )
        return accounts

    @staticmethod
    def record_balance(
        db: Session, account: LedgerAccount, balance_minor_units: int, on_date: date
    ) -> AccountBalance:
        """Set the account balance and upsert the balance row for ``on_date``."""
        account.balance_minor_units = balance_minor_units

        existing = (
            db.query(AccountBalance)
            .filter_by(ledger_account_id=account.id, date=on_date)
            .first()
        )
        if existing:
            existing.balance_minor_units = balance_minor_units
            existing.currency = account.currency
            return existing

        row = AccountBalance(
            ledger_account_id=account.id,
            date=on_date,
            balance_minor_units=balance_minor_units,
            currency=account.currency,
        )
        db.add(row)
        return row
