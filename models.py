from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Record(Base):
    """One persisted snapshot, stored whole under ``namespace:key``."""

    __tablename__ = "records"

    key = Column(String, primary_key=True)          # e.g. "sample:MDO-001"
    namespace = Column(String, index=True)          # "sample", "outcrop" or "borehole"
    payload = Column(Text, nullable=False)          # JSON document
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
