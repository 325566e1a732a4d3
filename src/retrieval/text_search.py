"""Keyword search with heuristic scoring. Works whether or not chunks have embeddings."""
import time
from typing import List

from src.config import get_settings
from src.ingestion.storage import find_by_owner
from src.retrieval.query_preprocessor import extract_keywords
from src.schemas.chunks import ChunkResponse
from src.schemas.retrieval import RetrievalResult, TextFilter
from src.logging_config import get_logger

log = get_logger(__name__)

PHRASE_IN_CONTENT = 10
PHRASE_IN_TITLE = 8
KEYWORD_IN_CONTENT = 2
KEYWORD_IN_TITLE = 3
CONCISE_BONUS = 1
CONCISE_MAX_CHARS = 500
SCORE_SCALE = 10.0


def score_candidate(candidate: ChunkResponse, phrase: str, keywords: List[str]) -> float:
    """
    Relevance of one chunk to a query, normalized to [0, 1].

    Whole-phrase hits weigh most, then per-keyword hits (title hits above
    content hits), plus a small bonus for short chunks.
    """
    content = candidate.content.lower()
    title = candidate.note_title.lower()
    phrase = phrase.lower()

    score = 0
    if phrase and phrase in content:
        score += PHRASE_IN_CONTENT
    if phrase and phrase in title:
        score += PHRASE_IN_TITLE

    for keyword in keywords:
        if keyword in content:
            score += KEYWORD_IN_CONTENT
        if keyword in title:
            score += KEYWORD_IN_TITLE

    if len(candidate.content) < CONCISE_MAX_CHARS:
        score += CONCISE_BONUS

    return min(score / SCORE_SCALE, 1.0)


def rank_candidates(
    candidates: List[ChunkResponse],
    phrase: str,
    limit: int,
    noise_floor: float = 0.1,
) -> List[RetrievalResult]:
    """
    Score, drop anything at or below the noise floor, and keep the best `limit`.
    Equal scores keep the candidates' incoming (newest-first) order.
    """
    keywords = extract_keywords(phrase)
    scored = [
        RetrievalResult(**candidate.model_dump(), similarity=score_candidate(candidate, phrase, keywords))
        for candidate in candidates
    ]
    relevant = [r for r in scored if r.similarity > noise_floor]
    # sorted() is stable
    relevant = sorted(relevant, key=lambda r: r.similarity, reverse=True)
    return relevant[:limit]


async def text_search(
    query: str,
    owner_id: str,
    limit: int,
    unembedded_only: bool = False,
) -> List[RetrievalResult]:
    """Fetch up to 2 x limit newest matching chunks, then score and rank them."""
    start_time = time.perf_counter()
    settings = get_settings().retrieval

    text_filter = TextFilter(phrase=query, keywords=extract_keywords(query))
    candidates = await find_by_owner(
        owner_id, text_filter, limit=limit * 2, unembedded_only=unembedded_only
    )
    results = rank_candidates(candidates, query, limit, noise_floor=settings.noise_floor)

    latency_ms = (time.perf_counter() - start_time) * 1000
    log.info(
        "text_search_completed",
        keywords=len(text_filter.keywords),
        unembedded_only=unembedded_only,
        candidates=len(candidates),
        results_returned=len(results),
        latency_ms=round(latency_ms, 2),
    )
    return results
