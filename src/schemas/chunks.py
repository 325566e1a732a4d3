from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

class TextChunk(BaseModel):
    """A chunker output: a bounded, heading-aware slice of a note."""
    chunk_id: str  # Deterministic "{note_id}_chunk_{index}"
    content: str
    index: int = Field(ge=0)
    heading: Optional[str] = None

# Input: What we send TO the database
class ChunkCreate(TextChunk):
    note_id: str
    owner_id: str
    embedding: List[float] = Field(default_factory=list)  # Empty in text-search-only mode

# Output: What we read FROM the database
class ChunkResponse(TextChunk):
    model_config = ConfigDict(from_attributes=True)

    note_id: str
    owner_id: str
    created_at: Optional[datetime] = None
    note_title: str = ""  # Denormalized for citations
