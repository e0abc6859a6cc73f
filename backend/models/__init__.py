"""SQLAlchemy ORM models."""

from .account_balance import AccountBalance
from .connection import Connection
from .external_account import ExternalAccountSnapshot
from .family import Family
from .ledger_account import LedgerAccount
from .merchant import Merchant
from .sync_run import SyncRun
from .transaction import ImportedTransaction
from .utils import generate_uuid

__all__ = ["AccountBalance", "Connection", "ExternalAccountSnapshot", "Family", "ImportedTransaction", "LedgerAccount", "Merchant", "SyncRun", "generate_uuid"]
