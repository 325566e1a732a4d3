"""Retrieval module for note search: keyword scoring and vector similarity."""

from .query_preprocessor import preprocess_query, extract_keywords
from .text_search import text_search, score_candidate, rank_candidates
from .similarity_search import vector_search, maximal_marginal_relevance
from .retriever import retrieve, search, merge_results

__all__ = [
    "preprocess_query",
    "extract_keywords",
    "text_search",
    "score_candidate",
    "rank_candidates",
    "vector_search",
    "maximal_marginal_relevance",
    "retrieve",
    "search",
    "merge_results",
]
