"""Outbound notifications emitted by a sync cycle.

The balance/valuation engine and the auto-categorization passes live
outside this service. The orchestrator tells them what changed through a
``SyncEventHandler``; the default handler only logs.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class SyncEventHandler(Protocol):
    def account_imported(self, ledger_account_id: str) -> None:
        """A linked ledger account was refreshed; recompute its balances."""
        ...

    def transactions_imported(self, transaction_ids: list[str]) -> None:
        """New transactions exist; run auto-categorization and merchant detection."""
        ...


class LoggingSyncEvents:
    """Default handler used when no downstream collaborator is wired in."""

    def account_imported(self, ledger_account_id: str) -> None:
        logger.info("Account %s imported; balance recompute requested", ledger_account_id)

    def transactions_imported(self, transaction_ids: list[str]) -> None:
        logger.info(
            "%d transactions imported; auto-categorization requested",
            len(transaction_ids),
        )
