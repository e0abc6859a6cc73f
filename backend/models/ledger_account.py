"""LedgerAccount model - the normalized account in the host ledger."""

from datetime import datetime, timezone

from sqlalchemy import JSON, BigInteger, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.account_kind import AccountKind, kind_from_dict, kind_name, kind_to_dict
from models.utils import generate_uuid


class LedgerAccount(Base):
    """A user-facing ledger account, linked to at most one external snapshot.

    Balances are stored in integer minor currency units. The account kind
    is a tagged union (see :mod:`models.account_kind`); use the ``kind``
    property rather than touching ``account_kind``/``kind_details`` directly.
    """

    __tablename__ = "ledger_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    family_id = Column(String(36), ForeignKey("families.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    mask = Column(String(4), nullable=True)
    institution_name = Column(String, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    account_kind = Column(String, nullable=False)
    kind_details = Column(JSON, nullable=False, default=dict)
    balance_minor_units = Column(BigInteger, nullable=True)
    external_id = Column(String, nullable=True)
    provider = Column(String, nullable=True)  # e.g. "yodlee"
    notes = Column(Text, nullable=True)

    last_synced_at = Column(DateTime, nullable=True)
    sync_error = Column(Text, nullable=True)
    sync_error_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    family = relationship("Family", back_populates="ledger_accounts")
    external_snapshot = relationship(
        "ExternalAccountSnapshot", back_populates="ledger_account", uselist=False
    )
    transactions = relationship(
        "ImportedTransaction", back_populates="ledger_account", cascade="all, delete-orphan"
    )
    balances = relationship(
        "AccountBalance", back_populates="ledger_account", cascade="all, delete-orphan"
    )

    @property
    def kind(self) -> AccountKind:
        return kind_from_dict(self.account_kind, self.kind_details)

    @kind.setter
    def kind(self, value: AccountKind) -> None:
        self.account_kind = kind_name(value)
        self.kind_details = kind_to_dict(value)
