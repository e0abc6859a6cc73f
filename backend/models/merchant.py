"""Merchant model - payees resolved from imported transactions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Merchant(Base):
    """A merchant, unique by exact name within a family."""

    __tablename__ = "merchants"
    __table_args__ = (
        UniqueConstraint("family_id", "name", name="uix_merchant_family_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    family_id = Column(String(36), ForeignKey("families.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    family = relationship("Family", back_populates="merchants")
