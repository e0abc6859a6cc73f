"""Family model - the owner of connections, ledger accounts and merchants."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Family(Base):
    """A household whose accounts are tracked in the ledger."""

    __tablename__ = "families"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    # Gates the downstream auto-categorization / merchant detection passes
    auto_categorize_enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    connections = relationship("Connection", back_populates="family")
    ledger_accounts = relationship("LedgerAccount", back_populates="family")
    merchants = relationship("Merchant", back_populates="family")
