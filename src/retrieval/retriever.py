"""High-level retrieval orchestration."""
from typing import List, Optional, Tuple
from src.config import get_settings, RetrievalSettings
from src.ingestion.embedder import EmbeddingGateway, get_embedding_gateway
from src.retrieval.query_preprocessor import preprocess_query
from src.retrieval.similarity_search import vector_search
from src.retrieval.text_search import text_search
from src.schemas.retrieval import RetrievalResponse, RetrievalResult, SearchMode
from src.exceptions import RetrievalException, SimilaritySearchError, StorageException
from src.logging_config import get_logger
from src.observability import track, Phase

log = get_logger(__name__)


def merge_results(
    primary: List[RetrievalResult],
    secondary: List[RetrievalResult],
    limit: int,
) -> List[RetrievalResult]:
    """
    Combine two ranked lists, dropping chunks already in `primary`, and keep the best `limit`.
    Equal similarities keep `primary` first.
    """
    seen = {r.chunk_id for r in primary}
    combined = primary + [r for r in secondary if r.chunk_id not in seen]
    # sorted() is stable
    return sorted(combined, key=lambda r: r.similarity, reverse=True)[:limit]


async def _vector_results(
    gateway: EmbeddingGateway,
    processed_query: str,
    owner_id: str,
    limit: int,
    settings: RetrievalSettings,
) -> Tuple[List[RetrievalResult], SearchMode]:
    """
    Vector hits above the noise floor, topped up with keyword hits on chunks
    stored without an embedding (indexed while embeddings were unavailable).
    An empty list means the caller should fall back to plain keyword search.
    """
    query_embedding = await gateway.embed_query(processed_query)
    if not query_embedding:
        return [], SearchMode.TEXT

    try:
        vector_hits = await vector_search(
            query_embedding,
            owner_id,
            limit,
            lambda_mult=settings.mmr_lambda,
            noise_floor=settings.noise_floor,
        )
    except SimilaritySearchError as e:
        log.warning("vector_search_unavailable", owner_id=owner_id, error=str(e), fallback="text_search")
        return [], SearchMode.TEXT

    if not vector_hits:
        log.info("vector_search_empty", fallback="text_search")
        return [], SearchMode.TEXT

    unembedded_hits = await text_search(processed_query, owner_id, limit, unembedded_only=True)
    if not unembedded_hits:
        return vector_hits, SearchMode.VECTOR
    return merge_results(vector_hits, unembedded_hits, limit), SearchMode.HYBRID


@track(name="retrieve", phase=Phase.RETRIEVAL)
async def retrieve(query: str, owner_id: str, limit: Optional[int] = None) -> RetrievalResponse:
    """
    Rank an owner's chunks against a query.

    Vector search is tried first when embeddings are available, merged with
    keyword matches on chunks that were stored without an embedding. Keyword
    search answers on its own whenever embeddings are unavailable, the vector
    path fails, or nothing clears the noise floor. Storage failures are logged
    and produce an empty response instead of an error.

    Args:
        query: Raw user query
        owner_id: Only this owner's live notes are searched
        limit: Maximum number of results (defaults to RETRIEVAL__DEFAULT_LIMIT)
    """
    settings = get_settings().retrieval
    limit = settings.default_limit if limit is None else limit

    try:
        processed_query = preprocess_query(query)
    except RetrievalException:
        return RetrievalResponse(query=query, results=[], limit=limit)

    if not processed_query or limit <= 0:
        return RetrievalResponse(query=query, results=[], limit=limit)

    try:
        gateway = get_embedding_gateway()
        if settings.prefer_vector_search and gateway.is_enabled():
            results, mode = await _vector_results(gateway, processed_query, owner_id, limit, settings)
            if results:
                return RetrievalResponse(query=query, results=results, limit=limit, mode=mode)

        results = await text_search(processed_query, owner_id, limit)
        return RetrievalResponse(query=query, results=results, limit=limit, mode=SearchMode.TEXT)

    except StorageException as e:
        log.error("retrieval_failed", owner_id=owner_id, error=str(e))
        return RetrievalResponse(query=query, results=[], limit=limit)


async def search(query: str, owner_id: str, limit: int = 5) -> List[RetrievalResult]:
    """Ranked chunks for a query, best first."""
    response = await retrieve(query, owner_id, limit)
    return response.results
