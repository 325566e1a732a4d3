from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, UniqueConstraint
from src.models.base import Base

class EmbeddingUsage(Base):
    """Daily token counters per owner, estimated with the chars/4 heuristic."""
    __tablename__ = "embedding_usage"
    __table_args__ = (
        UniqueConstraint("owner_id", "day", name="uq_embedding_usage_owner_day"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String, nullable=False, index=True)
    day = Column(Date, nullable=False)

    embedding_tokens = Column(Integer, nullable=False, default=0)
    chat_tokens = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
