"""Pydantic schemas for retrieval responses."""
from enum import Enum
from pydantic import BaseModel, Field
from src.schemas.chunks import ChunkResponse

class SearchMode(str, Enum):
    TEXT = "text"
    VECTOR = "vector"
    HYBRID = "hybrid"  # vector hits plus keyword hits on unembedded chunks

class RetrievalResult(ChunkResponse):
    """A single retrieved chunk with its relevance score."""
    similarity: float = Field(ge=0, le=1, description="Normalized relevance (1 = best match)")

class RetrievalResponse(BaseModel):
    """Ranked results plus which search path produced them."""
    query: str
    results: list[RetrievalResult]
    limit: int
    mode: SearchMode = SearchMode.TEXT

    @property
    def result_count(self) -> int:
        return len(self.results)

class TextFilter(BaseModel):
    """Candidate filter for keyword search: the whole phrase plus its keywords."""
    phrase: str
    keywords: list[str] = Field(default_factory=list)
