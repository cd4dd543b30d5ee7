from sqlalchemy import Column, DateTime, Integer, String

from eventhub.database import Base
from eventhub.utils.timeutils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    pubkey = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)
    sig = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
