from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from tenacity import AsyncRetrying, stop_after_attempt, retry_if_exception_type

from src.db.db_manager import db_manager
from src.schemas.chunks import ChunkCreate, ChunkResponse
from src.schemas.notes import NoteRecord
from src.schemas.retrieval import TextFilter
from src.models.note import Note
from src.models.chunk import NoteChunk
from src.models.usage import EmbeddingUsage
from src.exceptions import StorageException
from src.logging_config import get_logger
from src.observability import track

log = get_logger(__name__)


def _to_response(chunk: NoteChunk, note_title: str) -> ChunkResponse:
    return ChunkResponse(
        chunk_id=chunk.chunk_id,
        content=chunk.content,
        index=chunk.chunk_index,
        heading=chunk.heading,
        note_id=chunk.note_id,
        owner_id=chunk.owner_id,
        created_at=chunk.created_at,
        note_title=note_title or "",
    )


async def find_note_by_id_for_owner(note_id: str, owner_id: str) -> Optional[NoteRecord]:
    """Fetch a live note. Deleted notes and notes of other owners read as missing."""
    try:
        async with db_manager.get_session() as session:
            query = select(Note).where(
                Note.id == note_id,
                Note.owner_id == owner_id,
                Note.is_deleted.is_(False),
            )
            result = await session.execute(query)
            note = result.scalar_one_or_none()
            return NoteRecord.model_validate(note) if note else None
    except Exception as e:
        log.error("note_lookup_failed", note_id=note_id, error=str(e))
        raise StorageException(f"Database error: {e}") from e


async def list_note_ids_for_owner(owner_id: str) -> List[str]:
    """Ids of an owner's live notes, oldest first."""
    try:
        async with db_manager.get_session() as session:
            result = await session.execute(
                select(Note.id)
                .where(Note.owner_id == owner_id, Note.is_deleted.is_(False))
                .order_by(Note.created_at)
            )
            return list(result.scalars().all())
    except Exception as e:
        log.error("note_list_failed", owner_id=owner_id, error=str(e))
        raise StorageException(f"Database error: {e}") from e


@track(name="delete_chunks")
async def delete_by_note(note_id: str, owner_id: str) -> int:
    """Remove every chunk of a note. Returns how many were removed (0 is fine)."""
    try:
        async with db_manager.get_session() as session:
            result = await session.execute(
                delete(NoteChunk).where(
                    NoteChunk.note_id == note_id,
                    NoteChunk.owner_id == owner_id,
                )
            )
            deleted = result.rowcount or 0
        log.info("chunks_deleted", note_id=note_id, count=deleted)
        return deleted
    except Exception as e:
        log.error("chunk_delete_failed", note_id=note_id, error=str(e))
        raise StorageException(f"Database error: {e}") from e


@track(name="insert_chunks")
async def insert_all(chunks: List[ChunkCreate]) -> None:
    """
    Insert a note's chunk set.
    Callers delete the previous set first; a crash mid-batch is repaired by the next re-process.
    """
    if not chunks:
        return

    db_chunks = [
        NoteChunk(
            chunk_id=c.chunk_id,
            chunk_index=c.index,
            content=c.content,
            heading=c.heading,
            # Empty vectors are stored as NULL, never as a partial vector
            embedding=c.embedding or None,
            note_id=c.note_id,
            owner_id=c.owner_id,
        )
        for c in chunks
    ]
    try:
        async with db_manager.get_session() as session:
            session.add_all(db_chunks)
        log.info("chunks_stored", note_id=chunks[0].note_id, count=len(db_chunks))
    except Exception as e:
        log.error("chunk_insert_failed", note_id=chunks[0].note_id, error=str(e))
        raise StorageException(f"Database error: {e}") from e


async def find_by_owner(
    owner_id: str,
    text_filter: TextFilter,
    limit: int,
    unembedded_only: bool = False,
) -> List[ChunkResponse]:
    """
    Keyword-search candidates for an owner, newest first, capped at `limit`.

    A chunk qualifies if its content or its note's title contains the whole
    phrase, or its content contains any single keyword (case-insensitive).
    The cap is applied before any scoring, so an old but relevant chunk can be
    crowded out by newer partial matches.

    With `unembedded_only`, only chunks stored without an embedding qualify:
    the ones vector search can never return.
    """
    conditions = [
        NoteChunk.content.icontains(text_filter.phrase, autoescape=True),
        Note.title.icontains(text_filter.phrase, autoescape=True),
    ]
    conditions.extend(
        NoteChunk.content.icontains(keyword, autoescape=True)
        for keyword in text_filter.keywords
    )

    filters = [
        NoteChunk.owner_id == owner_id,
        Note.owner_id == owner_id,
        Note.is_deleted.is_(False),
        or_(*conditions),
    ]
    if unembedded_only:
        filters.append(NoteChunk.embedding.is_(None))

    query = (
        select(NoteChunk, Note.title)
        .join(Note, Note.id == NoteChunk.note_id)
        .where(*filters)
        .order_by(NoteChunk.created_at.desc(), NoteChunk.id.desc())
        .limit(limit)
    )
    try:
        async with db_manager.get_session() as session:
            result = await session.execute(query)
            rows = result.all()
        return [_to_response(chunk, title) for chunk, title in rows]
    except Exception as e:
        log.error("candidate_fetch_failed", owner_id=owner_id, error=str(e))
        raise StorageException(f"Candidate search failed: {e}") from e


async def search_by_vector(
    owner_id: str,
    query_embedding: List[float],
    limit: int,
) -> List[Tuple[ChunkResponse, float, List[float]]]:
    """
    Nearest embedded chunks by pgvector cosine distance.

    Returns (chunk, similarity, embedding) triples, similarity = 1 - distance.
    Chunks stored without an embedding are never returned.
    """
    distance = NoteChunk.embedding.cosine_distance(query_embedding).label("distance")
    query = (
        select(NoteChunk, Note.title, distance)
        .join(Note, Note.id == NoteChunk.note_id)
        .where(
            NoteChunk.owner_id == owner_id,
            Note.is_deleted.is_(False),
            NoteChunk.embedding.is_not(None),
        )
        .order_by(distance)
        .limit(limit)
    )
    try:
        async with db_manager.get_session() as session:
            result = await session.execute(query)
            rows = result.all()
        return [
            (_to_response(chunk, title), 1.0 - float(dist), [float(x) for x in chunk.embedding])
            for chunk, title, dist in rows
        ]
    except Exception as e:
        log.error("vector_search_failed", owner_id=owner_id, error=str(e))
        raise StorageException(f"Vector search failed: {e}") from e


async def _add_usage(owner_id: str, day: date, embedding_tokens: int, chat_tokens: int) -> None:
    async with db_manager.get_session() as session:
        result = await session.execute(
            select(EmbeddingUsage).where(
                EmbeddingUsage.owner_id == owner_id,
                EmbeddingUsage.day == day,
            )
        )
        usage = result.scalar_one_or_none()
        if usage:
            usage.embedding_tokens += embedding_tokens
            usage.chat_tokens += chat_tokens
        else:
            session.add(EmbeddingUsage(
                owner_id=owner_id,
                day=day,
                embedding_tokens=embedding_tokens,
                chat_tokens=chat_tokens,
            ))


async def record_usage(
    owner_id: str,
    day: date,
    embedding_tokens: int = 0,
    chat_tokens: int = 0,
) -> None:
    """
    Add to the owner's daily token counters.

    Two notes indexed at once can both try to create the day's row; the loser
    hits the (owner_id, day) unique constraint and is retried once, which then
    takes the update branch. Accounting must never break the main flow, so
    other failures are logged only.
    """
    if embedding_tokens == 0 and chat_tokens == 0:
        return

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(2),
            retry=retry_if_exception_type(IntegrityError),
            reraise=True,
        ):
            with attempt:
                await _add_usage(owner_id, day, embedding_tokens, chat_tokens)
    except Exception as e:
        log.warning("usage_update_failed", owner_id=owner_id, error=str(e))
