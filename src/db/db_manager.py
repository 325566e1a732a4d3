import contextlib
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.sql import text
from src.config import get_settings
from src.models.base import Base
# Import models so they are registered with Base metadata
from src.models.note import Note
from src.models.chunk import NoteChunk
from src.models.usage import EmbeddingUsage

class DatabaseManager:
    def __init__(self, url: Optional[str] = None, **engine_kwargs):
        self.settings = get_settings()
        url = url or self.settings.database_url
        # Ensure we use the async driver
        url = url.replace("postgresql://", "postgresql+psycopg://")
        self.is_postgres = url.startswith("postgresql")

        if self.is_postgres:
            statement_timeout_ms = int(self.settings.timeout.db_seconds * 1000)
            engine_kwargs.setdefault("pool_size", 5)
            engine_kwargs.setdefault("max_overflow", 10)
            engine_kwargs.setdefault(
                "connect_args", {"options": f"-c statement_timeout={statement_timeout_ms}"}
            )

        self.engine = create_async_engine(url, echo=False, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False
        )

    async def init_db(self):
        """Initialize database: create extension and tables."""
        async with self.engine.begin() as conn:
            if self.is_postgres:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(Base.metadata.create_all)

    async def drop_db(self):
        """Drop all pipeline tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @contextlib.asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

# Global instance
db_manager = DatabaseManager()
