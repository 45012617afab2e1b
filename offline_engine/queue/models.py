"""
Database model for the offline mutation store
SQLAlchemy ORM model for queued score and timer-event mutations
"""
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class QueuedMutation(Base):
    """
    Queued mutation - one row per write captured while offline
    Rows are never deleted; synced rows are kept as history
    """
    __tablename__ = "queued_mutations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String, nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    synced = Column(Boolean, nullable=False, default=False, index=True)

    def __repr__(self):
        return f"<QueuedMutation(id={self.id}, kind='{self.kind}', synced={self.synced})>"
