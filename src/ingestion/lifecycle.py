"""
Hooks for the note create/update/delete handlers.

Indexing runs as detached asyncio tasks: the request that changed the note
never waits for it and never sees its errors.
"""
import asyncio
from typing import Dict, Optional, Set, Tuple

from src.ingestion.pipeline import process_note_for_rag, delete_chunks_for_note
from src.logging_config import get_logger

log = get_logger(__name__)


class BackgroundIndexer:
    """
    Fire-and-forget scheduler for note indexing.

    Holds a reference to every running task until it finishes. Jobs for the
    same note run one after another, so the last scheduled content wins.
    """

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()
        self._latest: Dict[Tuple[str, str], asyncio.Task] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _run(self, note_id: str, owner_id: str, after: Optional[asyncio.Task]) -> None:
        if after is not None:
            await asyncio.wait([after])
        try:
            await process_note_for_rag(note_id, owner_id)
        except Exception as e:
            log.error(
                "rag_processing_failed",
                note_id=note_id,
                owner_id=owner_id,
                error_type=type(e).__name__,
                error=str(e),
            )

    def _on_done(self, key: Tuple[str, str], task: asyncio.Task) -> None:
        self._pending.discard(task)
        if self._latest.get(key) is task:
            del self._latest[key]
        if task.cancelled():
            log.warning("rag_processing_cancelled", note_id=key[0])

    def schedule(self, note_id: str, owner_id: str) -> asyncio.Task:
        """Submit a note for (re-)indexing. Must be called from a running event loop."""
        key = (note_id, owner_id)
        task = asyncio.create_task(
            self._run(note_id, owner_id, after=self._latest.get(key)),
            name=f"rag-index:{note_id}",
        )
        self._pending.add(task)
        self._latest[key] = task
        task.add_done_callback(lambda t: self._on_done(key, t))
        log.debug("rag_processing_scheduled", note_id=note_id)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled job (used on shutdown and in tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# Global instance
indexer = BackgroundIndexer()


def on_note_created(note_id: str, owner_id: str) -> asyncio.Task:
    return indexer.schedule(note_id, owner_id)


def on_note_updated(note_id: str, owner_id: str, content_changed: bool) -> Optional[asyncio.Task]:
    """Re-index only when the content changed; title-only edits are picked up by the join."""
    if not content_changed:
        return None
    return indexer.schedule(note_id, owner_id)


async def on_note_deleted(note_id: str, owner_id: str) -> None:
    """Awaited together with the soft-delete so no orphaned chunks stay retrievable."""
    await delete_chunks_for_note(note_id, owner_id)


async def drain_pending() -> None:
    await indexer.drain()
