from typing import List, Optional
from src.config import get_settings
from src.ingestion.chunker import estimate_tokens
from src.retrieval.retriever import search
from src.schemas.context import ChatContext, Citation
from src.schemas.retrieval import RetrievalResult
from src.logging_config import get_logger
from src.observability import track, Phase

log = get_logger(__name__)

# Approximate cost of the "--- title > heading ---" line and separators
HEADER_OVERHEAD_TOKENS = 20


def format_header(result: RetrievalResult) -> str:
    heading = f" > {result.heading}" if result.heading else ""
    return f"--- {result.note_title}{heading} ---"


def assemble_context(results: List[RetrievalResult], max_tokens: int) -> ChatContext:
    """
    Pack ranked chunks into a context block until the token budget is reached.

    Stops at the first chunk that does not fit; lower-ranked chunks are not
    tried even if they are smaller.
    """
    parts: List[str] = []
    citations: List[Citation] = []
    token_count = 0

    for result in results:
        chunk_tokens = estimate_tokens(result.content)
        if token_count + chunk_tokens > max_tokens:
            log.debug("context_limit_reached", tokens=token_count, max_tokens=max_tokens)
            break

        parts.append(f"{format_header(result)}\n{result.content}\n\n")
        citations.append(Citation(title=result.note_title, heading=result.heading or None))
        token_count += chunk_tokens + HEADER_OVERHEAD_TOKENS

    return ChatContext(context="".join(parts), citations=citations)


@track(name="build_chat_context", phase=Phase.CONTEXT)
async def build_chat_context(query: str, owner_id: str, max_tokens: Optional[int] = None) -> ChatContext:
    """
    Build the grounding context for a chat question.

    An empty ChatContext means nothing relevant was found; the renderer should
    fall back to its generic prompt.
    """
    settings = get_settings().retrieval
    max_tokens = settings.max_context_tokens if max_tokens is None else max_tokens

    results = await search(query, owner_id, limit=settings.context_candidates)
    if not results:
        log.info("context_empty", owner_id=owner_id)
        return ChatContext()

    chat_context = assemble_context(results, max_tokens)
    log.info(
        "context_built",
        owner_id=owner_id,
        candidates=len(results),
        citations=len(chat_context.citations),
        context_tokens=estimate_tokens(chat_context.context),
    )
    return chat_context
