"""Vector search over embedded chunks, diversified with maximal marginal relevance."""
import time
from typing import List, Sequence, Tuple

import numpy as np

from src.ingestion.storage import search_by_vector
from src.schemas.chunks import ChunkResponse
from src.schemas.retrieval import RetrievalResult
from src.exceptions import SimilaritySearchError, StorageException
from src.logging_config import get_logger

log = get_logger(__name__)

VectorHit = Tuple[ChunkResponse, float, List[float]]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)
    norm = np.linalg.norm(a_arr) * np.linalg.norm(b_arr)
    if norm == 0:
        return 0.0
    return float(np.dot(a_arr, b_arr) / norm)


def maximal_marginal_relevance(hits: List[VectorHit], k: int, lambda_mult: float = 0.7) -> List[VectorHit]:
    """
    Pick `k` hits balancing query similarity against redundancy.

    The most similar hit is taken first; each following pick maximizes
    lambda * sim(query, hit) - (1 - lambda) * max sim(hit, already picked).
    """
    if not hits or k <= 0:
        return []

    remaining = sorted(hits, key=lambda h: h[1], reverse=True)
    selected = [remaining.pop(0)]

    while len(selected) < k and remaining:
        best_index = 0
        best_score = float("-inf")
        for i, (_, similarity, embedding) in enumerate(remaining):
            redundancy = max(cosine_similarity(embedding, chosen[2]) for chosen in selected)
            mmr_score = lambda_mult * similarity - (1 - lambda_mult) * redundancy
            if mmr_score > best_score:
                best_score = mmr_score
                best_index = i
        selected.append(remaining.pop(best_index))

    return selected


async def vector_search(
    query_embedding: List[float],
    owner_id: str,
    limit: int,
    lambda_mult: float = 0.7,
    noise_floor: float = 0.1,
) -> List[RetrievalResult]:
    """
    Fetch 2 x limit nearest chunks and keep a diverse `limit` of them.

    Hits at or below `noise_floor` are dropped, so an owner whose notes are
    all unrelated to the query gets no results rather than the nearest ones.

    Raises:
        SimilaritySearchError: the store could not run the nearest-neighbour query
    """
    start_time = time.perf_counter()

    try:
        hits = await search_by_vector(owner_id, query_embedding, limit=limit * 2)
    except StorageException as e:
        raise SimilaritySearchError(str(e)) from e

    relevant = [hit for hit in hits if hit[1] > noise_floor]
    diverse = maximal_marginal_relevance(relevant, k=limit, lambda_mult=lambda_mult)
    results = [
        RetrievalResult(**chunk.model_dump(), similarity=min(max(similarity, 0.0), 1.0))
        for chunk, similarity, _ in diverse
    ]

    latency_ms = (time.perf_counter() - start_time) * 1000
    log.info(
        "vector_search_completed",
        candidates=len(hits),
        below_noise_floor=len(hits) - len(relevant),
        results_returned=len(results),
        latency_ms=round(latency_ms, 2),
    )
    return results
