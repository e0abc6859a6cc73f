"""AccountBalance model - one reported balance per ledger account per day."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class AccountBalance(Base):
    """Daily balance as reported by the aggregator, in minor units."""

    __tablename__ = "account_balances"
    __table_args__ = (
        UniqueConstraint("ledger_account_id", "date", name="uix_balance_account_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ledger_account_id = Column(
        String(36), ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=False)
    balance_minor_units = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    ledger_account = relationship("LedgerAccount", back_populates="balances")
