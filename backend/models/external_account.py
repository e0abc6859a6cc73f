"""ExternalAccountSnapshot model - an account as last reported by Yodlee."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class ExternalAccountSnapshot(Base):
    """The raw aggregator payload for one external account.

    ``raw_payload`` is authoritative; every derived attribute below reads
    from it. The snapshot stays "unlinked" (``ledger_account_id`` is NULL)
    until the account importer maps it to a ledger account.
    """

    __tablename__ = "external_account_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "connection_id", "external_account_id",
            name="uix_snapshot_connection_external",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    connection_id = Column(
        String(36), ForeignKey("connections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_account_id = Column(String, nullable=False)
    ledger_account_id = Column(
        String(36), ForeignKey("ledger_accounts.id"), nullable=True, index=True
    )
    raw_payload = Column(JSON, nullable=False, default=dict)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    connection = relationship("Connection", back_populates="external_accounts")
    ledger_account = relationship("LedgerAccount", back_populates="external_snapshot")

    @property
    def is_linked(self) -> bool:
        return self.ledger_account_id is not None

    @property
    def payload(self) -> dict:
        return self.raw_payload or {}

    @property
    def name(self) -> str | None:
        return self.payload.get("accountName")

    @property
    def mask(self) -> str | None:
        number = self.payload.get("accountNumber")
        if not number:
            return None
        return str(number)[-4:]

    @property
    def institution_name(self) -> str | None:
        return self.payload.get("providerName")

    @property
    def balance(self):
        """Raw balance amount (major units, as reported), or None."""
        balance = self.payload.get("balance")
        if isinstance(balance, dict):
            return balance.get("amount")
        return None

    @property
    def currency(self) -> str | None:
        currency = self.payload.get("currency")
        if currency:
            return currency
        balance = self.payload.get("balance")
        if isinstance(balance, dict):
            return balance.get("currency")
        return None

    @property
    def container(self) -> str | None:
        return self.payload.get("CONTAINER")

    @property
    def account_subtype(self) -> str | None:
        return self.payload.get("accountType")
