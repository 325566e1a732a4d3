from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from pgvector.sqlalchemy import Vector
from src.models.base import Base
from src.config import get_settings

# The table schema depends on the env loaded when tables are first created
EMBEDDING_DIM = get_settings().embedding.dimension

class NoteChunk(Base):
    __tablename__ = "note_chunks"
    __table_args__ = (
        Index("ix_note_chunks_note_owner", "note_id", "owner_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    chunk_id = Column(String, unique=True, nullable=False, index=True)  # "{note_id}_chunk_{index}"
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    heading = Column(String, nullable=True)

    # NULL means text-search-only; never a partial vector
    embedding = Column(Vector(EMBEDDING_DIM), nullable=True)

    owner_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    note_id = Column(String, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False)
    note = relationship("Note", back_populates="chunks")
