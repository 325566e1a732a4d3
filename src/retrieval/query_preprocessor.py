from typing import List
from src.logging_config import get_logger
from src.exceptions import QueryPreprocessingError
from src.observability import track
log = get_logger(__name__)

# Words this short are too common to be useful keywords
MIN_KEYWORD_LENGTH = 3

@track(name="preprocess_query")
def preprocess_query(query: str) -> str:
    """Trim the query and collapse runs of whitespace to single spaces."""
    try:
        normalized_query = " ".join(query.replace("\x00", "").split())
        log.debug("query_preprocessed", original_length=len(query),
         processed_length=len(normalized_query))
        return normalized_query
    except Exception as e:
        log.error("query_preprocessing_failed", error=str(e))
        raise QueryPreprocessingError(f"Failed to preprocess query: {e}") from e

def extract_keywords(query: str) -> List[str]:
    """Lowercase words of three or more characters, in query order."""
    return [word for word in query.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]
