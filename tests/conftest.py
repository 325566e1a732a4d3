"""
Shared fixtures: in-memory SQLite store, seeding helpers, text-only embedding gateway.
"""
import os

# Must be set before src modules (and opik) are imported
os.environ["OPIK_TRACK_DISABLE"] = "true"
os.environ["EMBEDDING__API_KEY"] = ""

from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.pool import StaticPool

from src.config import EmbeddingSettings
from src.db.db_manager import DatabaseManager
from src.ingestion.embedder import EmbeddingGateway, reset_embedding_gateway
from src.models.chunk import NoteChunk
from src.models.note import Note


@pytest.fixture(autouse=True)
def fresh_gateway():
    """Never share a tripped breaker between tests."""
    reset_embedding_gateway()
    yield
    reset_embedding_gateway()


@pytest.fixture
async def sqlite_db():
    """In-memory database wired into the storage layer."""
    manager = DatabaseManager(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await manager.init_db()
    with patch("src.ingestion.storage.db_manager", manager):
        yield manager
    await manager.engine.dispose()


@pytest.fixture
def text_only_gateway():
    """A gateway with no API key: every embedding comes back empty."""
    gateway = EmbeddingGateway(settings=EmbeddingSettings(api_key=""))
    with patch("src.ingestion.pipeline.get_embedding_gateway", return_value=gateway), \
         patch("src.retrieval.retriever.get_embedding_gateway", return_value=gateway):
        yield gateway


@pytest.fixture
def add_note(sqlite_db):
    async def _add_note(note_id, owner_id, title, content="", is_deleted=False):
        async with sqlite_db.get_session() as session:
            session.add(Note(
                id=note_id,
                owner_id=owner_id,
                title=title,
                content=content,
                is_deleted=is_deleted,
            ))
    return _add_note


@pytest.fixture
def update_note(sqlite_db):
    async def _update_note(note_id, **changes):
        async with sqlite_db.get_session() as session:
            note = await session.get(Note, note_id)
            for key, value in changes.items():
                setattr(note, key, value)
    return _update_note


@pytest.fixture
def add_chunk(sqlite_db):
    """Insert a chunk row directly, with control over created_at."""
    async def _add_chunk(note_id, owner_id, index, content, heading=None, created_at=None, embedding=None):
        async with sqlite_db.get_session() as session:
            session.add(NoteChunk(
                chunk_id=f"{note_id}_chunk_{index}",
                chunk_index=index,
                content=content,
                heading=heading,
                embedding=embedding,
                note_id=note_id,
                owner_id=owner_id,
                created_at=created_at or datetime.utcnow(),
            ))
    return _add_chunk
