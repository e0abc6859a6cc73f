"""ImportedTransaction model - one normalized transaction from the aggregator."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class ImportedTransaction(Base):
    """A transaction posted to a ledger account.

    Deduplication key is ``external_id`` (the aggregator transaction id),
    unique per ledger account. Amounts follow the ledger convention:
    outflows negative, inflows positive, in minor currency units.
    """

    __tablename__ = "imported_transactions"
    __table_args__ = (
        UniqueConstraint(
            "ledger_account_id", "external_id",
            name="uix_transaction_account_external",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ledger_account_id = Column(
        String(36), ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_id = Column(String, nullable=False)
    amount_minor_units = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="uncategorized")
    merchant_id = Column(String(36), ForeignKey("merchants.id"), nullable=True)
    provider = Column(String, nullable=True)
    raw_payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    ledger_account = relationship("LedgerAccount", back_populates="transactions")
    merchant = relationship("Merchant")
