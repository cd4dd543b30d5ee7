"""Browse ledger model for view analytics."""

from sqlalchemy import Column, DateTime, Index, Integer, String, UniqueConstraint

from eventhub.database import Base
from eventhub.utils.timeutils import utcnow


class BrowseLog(Base):
    __tablename__ = "browse_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    identity = Column(String(255), nullable=True, index=True)
    anonymous_id = Column(String(255), nullable=False)
    target_id = Column(String(255), nullable=False, index=True)
    target_type = Column(String(64), nullable=True)
    ip_address = Column(String(45), nullable=True)
    # "user:<identity>" or "anon:<anonymous_id>"
    dedup_key = Column(String(300), nullable=False)
    # created_at floored to the dedup window
    dedup_bucket = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_browse_logs_target_created", "target_id", "created_at"),
        Index("idx_browse_logs_anonymous", "anonymous_id", "identity"),
        UniqueConstraint("target_id", "dedup_key", "dedup_bucket", name="uq_browse_logs_dedup"),
    )
