"""
Custom exception classes for the note indexing pipeline.
"""

class IngestionException(Exception):
    """Base exception for all note indexing errors."""
    pass

class StorageException(Exception):
    """Base exception for all storage-related errors."""
    pass

class NoteNotFoundError(IngestionException):
    """Raised when a note is missing, deleted, or owned by someone else."""
    def __init__(self, note_id: str, owner_id: str):
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id
        self.owner_id = owner_id

class ChunkingError(IngestionException):
    """Raised when text chunking fails."""
    pass

class EmbeddingError(IngestionException):
    """Raised when embedding generation fails."""
    pass

class EmbeddingTimeoutError(EmbeddingError):
    """Embedding API call timed out or the connection dropped."""
    pass

class EmbeddingRateLimitError(EmbeddingError):
    """Embedding API quota or rate limit exceeded."""
    pass


"""
Custom exception classes for the retrieval pipeline.
"""
class RetrievalException(Exception):
    """Base exception for all retrieval-related errors."""
    pass
class QueryPreprocessingError(RetrievalException):
    """Raised when query preprocessing fails."""
    pass
class SimilaritySearchError(RetrievalException):
    """Raised when the vector path fails; retrieval falls back to keyword search."""
    pass
