"""Connection model - one linked institution at the Yodlee aggregator."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid

STATUS_GOOD = "good"
STATUS_REQUIRES_UPDATE = "requires_update"

SYNC_STATE_IDLE = "idle"
SYNC_STATE_RUNNING = "running"


class Connection(Base):
    """A family's link to one external institution via the aggregator.

    ``session_token`` is the opaque user credential handed over by the
    linking flow. It is never logged and is excluded from ``repr``.

    ``sync_state`` is the durable "syncing?" flag. It is only ever moved
    to running through a conditional UPDATE so two overlapping triggers
    cannot both claim the connection. A running claim older than
    ``SYNC_STALE_AFTER_MINUTES`` (or one without ``sync_started_at``) is
    treated as abandoned and may be taken over.
    """

    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    family_id = Column(String(36), ForeignKey("families.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    session_token = Column(Text, nullable=False)
    external_id = Column(String, nullable=True, index=True)  # Yodlee providerAccountId
    status = Column(String, nullable=False, default=STATUS_GOOD)
    sync_state = Column(String, nullable=False, default=SYNC_STATE_IDLE)
    sync_started_at = Column(DateTime, nullable=True)  # when the current claim was taken
    last_synced_at = Column(DateTime, nullable=True)
    scheduled_for_deletion = Column(Boolean, nullable=False, default=False)

    # Institution details, refreshed best-effort during sync
    institution_id = Column(String, nullable=True)
    institution_name = Column(String, nullable=True)
    institution_url = Column(String, nullable=True)
    institution_color = Column(String, nullable=True)
    raw_institution_payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    family = relationship("Family", back_populates="connections")
    external_accounts = relationship(
        "ExternalAccountSnapshot",
        back_populates="connection",
        cascade="all, delete-orphan",
    )
    sync_runs = relationship(
        "SyncRun",
        back_populates="connection",
        cascade="all, delete-orphan",
        order_by="SyncRun.started_at",
    )

    @property
    def is_syncing(self) -> bool:
        return self.sync_state == SYNC_STATE_RUNNING

    @property
    def requires_update(self) -> bool:
        return self.status == STATUS_REQUIRES_UPDATE

    def __repr__(self) -> str:
        return (
            f"<Connection id={self.id} name={self.name!r} status={self.status} "
            f"sync_state={self.sync_state}>"
        )
