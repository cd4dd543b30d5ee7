"""Generic signed events submitted over the command socket."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from eventhub.database import Base
from eventhub.utils.timeutils import utcnow


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user = Column(String(255), nullable=False)
    ops = Column(String(1), nullable=False)
    code = Column(Integer, nullable=False)
    sig = Column(String(512), nullable=True)
    data = Column(JSON, nullable=True)
    tags = Column(JSON, nullable=True)
    client_created_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (Index("idx_events_user_created", "user", "created_at"),)
