import math
import re
from typing import List, Optional
from src.config import get_settings
from src.exceptions import ChunkingError
from src.schemas.chunks import TextChunk
from src.logging_config import get_logger
from src.observability import track

log = get_logger(__name__)

_HEADING_MARKERS = re.compile(r"^#+\s*")
_SENTENCE_BREAKS = re.compile(r"[.!?]+")


def estimate_tokens(text: str) -> int:
    """Approximate token count (1 token ~ 4 characters). Budgets are calibrated against this."""
    return math.ceil(len(text) / 4)


def make_chunk_id(note_id: str, index: int) -> str:
    return f"{note_id}_chunk_{index}"


def _overlap_tail(text: str, overlap_words: int) -> str:
    if overlap_words <= 0:
        return ""
    return " ".join(text.split(" ")[-overlap_words:])


@track(name="chunk_text")
def chunk_text(
    text: str,
    note_id: str,
    max_tokens: Optional[int] = None,
    overlap_words: Optional[int] = None,
) -> List[TextChunk]:
    """
    Split note text into heading-aware chunks bounded by an approximate token budget.

    Markdown headings always start a new chunk. When a chunk outgrows
    `max_tokens` it is cut at its middle sentence boundary and the next chunk is
    seeded with the last `overlap_words` words of the cut-off half; a block with
    no sentence boundary is flushed whole.

    Args:
        text: Raw note content
        note_id: Owning note, used to derive deterministic chunk ids
        max_tokens: Token budget per chunk (defaults to CHUNKING__MAX_TOKENS)
        overlap_words: Words carried across a sentence cut (defaults to CHUNKING__OVERLAP_WORDS)

    Returns:
        Chunks in emission order; fragments of 20 characters or less are dropped
    """
    settings = get_settings().chunking
    max_tokens = settings.max_tokens if max_tokens is None else max_tokens
    overlap_words = settings.overlap_words if overlap_words is None else overlap_words

    try:
        if not text or not text.strip():
            return []

        chunks: List[TextChunk] = []
        buffer = ""
        heading: Optional[str] = None

        def flush(content: str) -> None:
            index = len(chunks)
            chunks.append(TextChunk(
                chunk_id=make_chunk_id(note_id, index),
                content=content.strip(),
                index=index,
                heading=heading,
            ))

        for line in text.split("\n"):
            stripped = line.strip()

            if stripped.startswith("#"):
                if buffer.strip():
                    flush(buffer)
                heading = _HEADING_MARKERS.sub("", stripped) or None
                buffer = line + "\n"
                continue

            buffer += line + "\n"
            if estimate_tokens(buffer) <= max_tokens:
                continue

            sentences = _SENTENCE_BREAKS.split(buffer)
            if len(sentences) > 1:
                split_point = len(sentences) // 2
                first_part = ".".join(sentences[:split_point]) + "."
                second_part = ".".join(sentences[split_point:])
                flush(first_part)
                buffer = _overlap_tail(first_part, overlap_words) + " " + second_part
            else:
                flush(buffer)
                buffer = ""

        if buffer.strip():
            flush(buffer)

        kept = [c for c in chunks if len(c.content) > settings.min_chunk_chars]
        log.debug(
            "chunking_complete",
            note_id=note_id,
            chunks_created=len(kept),
            fragments_dropped=len(chunks) - len(kept),
        )
        return kept

    except Exception as e:
        raise ChunkingError(f"Failed to chunk note {note_id}: {e}") from e
