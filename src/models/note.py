from datetime import datetime
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.orm import relationship
from src.models.base import Base

class Note(Base):
    """
    Read-side mirror of a note owned by the notes application.
    The pipeline only needs the title for citations and the soft-delete flag.
    """
    __tablename__ = "notes"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    owner_id = Column(String, nullable=False, index=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    chunks = relationship("NoteChunk", back_populates="note", passive_deletes=True)
