"""Rebuild the chunk sets of all live notes for one owner."""
import argparse
import asyncio
import sys
import uuid
from pathlib import Path

# Load environment variables (OPIK_*, EMBEDDING__*) before importing src modules
from dotenv import load_dotenv
load_dotenv()

# Setup path so we can import src
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from src.logging_config import configure_logging, get_logger, bind_contextvars, clear_contextvars
from src.ingestion.pipeline import process_note_for_rag
from src.ingestion.storage import list_note_ids_for_owner
from src.ingestion.embedder import get_embedding_gateway
from src.exceptions import IngestionException, StorageException
from src.config import get_settings
from src.observability import configure_observability, set_trace_source, set_trace_metadata, track, Phase

configure_logging(
    log_level=get_settings().log_level,
    json_format=get_settings().json_logs,
    log_file="reindex.log"
)
configure_observability()
log = get_logger(__name__)


@track(name="reindex_run", phase=Phase.INGESTION, tags=["execution:manual"])
async def reindex_owner(owner_id: str, run_id: str):
    """Re-process every live note of an owner, one at a time."""
    set_trace_metadata({"reindex_run_id": run_id, "owner_id": owner_id})

    note_ids = await list_note_ids_for_owner(owner_id)
    log.info("reindex_started", notes=len(note_ids),
             embeddings_enabled=get_embedding_gateway().is_enabled())

    processed, failed, total_chunks = 0, 0, 0
    for note_id in note_ids:
        try:
            total_chunks += await process_note_for_rag(note_id, owner_id)
            processed += 1
        except (IngestionException, StorageException) as e:
            failed += 1
            log.error("reindex_note_failed", note_id=note_id, error=str(e))

    log.info("reindex_completed", processed=processed, failed=failed, chunks=total_chunks)


async def main(owner_id: str):
    run_id = str(uuid.uuid4())
    bind_contextvars(reindex_run_id=run_id, owner_id=owner_id)
    set_trace_source("script")
    try:
        await reindex_owner(owner_id, run_id)
    finally:
        clear_contextvars()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--owner", required=True)
    args = parser.parse_args()
    asyncio.run(main(args.owner))
