"""SQLAlchemy schema for persisted mailbox options."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time, timezone-naive for SQLite compatibility."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Option(Base):
    """
    Named option value for the connected mailbox.

    Holds the pagination cursor, resolved label IDs, the connected token id,
    stored message snapshots and short-lived locks.

    Attributes:
        name: Option name (primary key)
        value: JSON-serializable value
        expires_at: When the option stops being visible (None = never)
        updated_at: Last write time
    """

    __tablename__ = 'options'

    name = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Option(name={self.name}, expires_at={self.expires_at})>"
