"""
Note indexing: chunk a note, embed the chunks when possible, replace the stored set.
"""
from datetime import date

from src.ingestion.chunker import chunk_text, estimate_tokens
from src.ingestion.embedder import get_embedding_gateway
from src.ingestion.storage import find_note_by_id_for_owner, delete_by_note, insert_all, record_usage
from src.schemas.chunks import ChunkCreate
from src.exceptions import NoteNotFoundError
from src.logging_config import get_logger
from src.observability import track, Phase

log = get_logger(__name__)


@track(name="process_note_for_rag", phase=Phase.INGESTION)
async def process_note_for_rag(note_id: str, owner_id: str) -> int:
    """
    Rebuild the chunk set of one note.

    Old chunks are always deleted before new ones are inserted. Embedding
    failures are absorbed by the gateway, so a note still gets text-searchable
    chunks when the provider is down.

    Returns:
        Number of chunks stored

    Raises:
        NoteNotFoundError: note is missing, soft-deleted, or not owned by owner_id
    """
    note = await find_note_by_id_for_owner(note_id, owner_id)
    if note is None:
        raise NoteNotFoundError(note_id, owner_id)

    await delete_by_note(note_id, owner_id)

    if not note.content.strip():
        log.info("note_empty_skipped", note_id=note_id)
        return 0

    chunks = chunk_text(note.content, note_id)
    if not chunks:
        log.info("note_no_chunks", note_id=note_id)
        return 0

    gateway = get_embedding_gateway()
    embeddings = await gateway.embed([c.content for c in chunks])

    chunk_creates = [
        ChunkCreate(
            **chunk.model_dump(),
            note_id=note_id,
            owner_id=owner_id,
            embedding=embedding,
        )
        for chunk, embedding in zip(chunks, embeddings)
    ]
    await insert_all(chunk_creates)

    embedded = any(embeddings)
    if embedded:
        await record_usage(
            owner_id,
            date.today(),
            embedding_tokens=sum(estimate_tokens(c.content) for c in chunks),
        )

    log.info(
        "note_processed",
        note_id=note_id,
        title=note.title,
        chunks=len(chunk_creates),
        mode="embedded" if embedded else "text_only",
    )
    return len(chunk_creates)


async def delete_chunks_for_note(note_id: str, owner_id: str) -> None:
    """Remove a note's chunks so a soft-deleted note stops being retrievable."""
    await delete_by_note(note_id, owner_id)
