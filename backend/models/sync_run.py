"""SyncRun model - one execution of the sync cycle for a connection."""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid

RUN_RUNNING = "running"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"


class SyncRun(Base):
    """A sync run; its terminal status is written exactly once."""

    __tablename__ = "sync_runs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    connection_id = Column(
        String(36), ForeignKey("connections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String, nullable=False, default=RUN_RUNNING)
    started_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    window_start = Column(Date, nullable=True)
    window_end = Column(Date, nullable=True)
    accounts_imported = Column(Integer, default=0)
    transactions_imported = Column(Integer, default=0)

    # Relationships
    connection = relationship("Connection", back_populates="sync_runs")

    @property
    def is_terminal(self) -> bool:
        return self.status in (RUN_COMPLETED, RUN_FAILED)

    def complete(self, now: datetime) -> None:
        """Move to ``completed``.

        Raises:
            ValueError: If the run already reached a terminal state.
        """
        self._finish(RUN_COMPLETED, now)

    def fail(self, now: datetime, error_message: str | None = None) -> None:
        """Move to ``failed`` and record the error message."""
        self._finish(RUN_FAILED, now)
        self.error_message = error_message

    def _finish(self, status: str, now: datetime) -> None:
        if self.is_terminal:
            raise ValueError(
                f"SyncRun {self.id} already {self.status}; cannot move to {status}"
            )
        self.status = status
        self.completed_at = now
