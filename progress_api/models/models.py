from progress_api.config import Base
from sqlalchemy import Column, Integer, String, JSON, DateTime, Boolean
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProgressRecord(Base):
    """One progress document per user. `version` backs optimistic locking."""
    __tablename__ = "user_progress"
    user_id = Column(String, primary_key=True, index=True)
    version = Column(Integer, nullable=False, default=1)
    data = Column(JSON, nullable=False)  # ProgressAggregate.to_dict()
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    last_sync_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
