import asyncio
import pytest
from unittest.mock import AsyncMock, patch
from src.ingestion import lifecycle
from src.ingestion.lifecycle import BackgroundIndexer
from src.exceptions import NoteNotFoundError, StorageException


@pytest.mark.asyncio
async def test_failures_are_logged_not_raised():
    indexer = BackgroundIndexer()
    with patch("src.ingestion.lifecycle.process_note_for_rag", new_callable=AsyncMock) as process, \
         patch("src.ingestion.lifecycle.log") as mock_log:
        process.side_effect = NoteNotFoundError("note-1", "owner-1")

        task = indexer.schedule("note-1", "owner-1")
        await task

        assert task.exception() is None
        log_error = mock_log.error
        log_error.assert_called_once()
        assert log_error.call_args.args[0] == "rag_processing_failed"
        assert log_error.call_args.kwargs["error_type"] == "NoteNotFoundError"


@pytest.mark.asyncio
async def test_schedule_returns_before_processing_finishes():
    indexer = BackgroundIndexer()
    release = asyncio.Event()

    async def slow_process(note_id, owner_id):
        await release.wait()
        return 3

    with patch("src.ingestion.lifecycle.process_note_for_rag", side_effect=slow_process):
        task = indexer.schedule("note-1", "owner-1")
        await asyncio.sleep(0)

        assert not task.done()
        assert indexer.pending_count == 1

        release.set()
        await indexer.drain()

    assert task.done()
    assert indexer.pending_count == 0


@pytest.mark.asyncio
async def test_jobs_for_the_same_note_run_in_order():
    indexer = BackgroundIndexer()
    events = []

    async def record(note_id, owner_id):
        events.append(("start", note_id))
        await asyncio.sleep(0.01)
        events.append(("end", note_id))

    with patch("src.ingestion.lifecycle.process_note_for_rag", side_effect=record):
        indexer.schedule("note-1", "owner-1")
        indexer.schedule("note-1", "owner-1")
        await indexer.drain()

    assert events == [("start", "note-1"), ("end", "note-1"), ("start", "note-1"), ("end", "note-1")]


@pytest.mark.asyncio
async def test_on_note_created_and_updated_schedule_processing():
    with patch("src.ingestion.lifecycle.process_note_for_rag", new_callable=AsyncMock) as process:
        lifecycle.on_note_created("note-1", "owner-1")
        lifecycle.on_note_updated("note-2", "owner-1", content_changed=True)
        await lifecycle.drain_pending()

        assert process.await_count == 2


@pytest.mark.asyncio
async def test_title_only_update_does_not_reindex():
    with patch("src.ingestion.lifecycle.process_note_for_rag", new_callable=AsyncMock) as process:
        assert lifecycle.on_note_updated("note-1", "owner-1", content_changed=False) is None
        await lifecycle.drain_pending()

        process.assert_not_called()


@pytest.mark.asyncio
async def test_on_note_deleted_awaits_chunk_removal():
    with patch("src.ingestion.lifecycle.delete_chunks_for_note", new_callable=AsyncMock) as delete:
        await lifecycle.on_note_deleted("note-1", "owner-1")
        delete.assert_awaited_once_with("note-1", "owner-1")


@pytest.mark.asyncio
async def test_on_note_deleted_propagates_storage_errors():
    with patch("src.ingestion.lifecycle.delete_chunks_for_note", new_callable=AsyncMock) as delete:
        delete.side_effect = StorageException("db down")
        with pytest.raises(StorageException):
            await lifecycle.on_note_deleted("note-1", "owner-1")
