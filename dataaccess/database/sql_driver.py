from sqlmodel import SQLModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession
from .base import BaseDatabaseDriver

class SQLDriver(BaseDatabaseDriver):
    def __init__(self, url: str, echo: bool = False, **engine_options):
        self.engine = create_async_engine(url, echo=echo, future=True, **engine_options)
        # autoflush off: staged writes reach the store only when explicitly saved
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    async def connect(self):
        """Check connectivity (the engine manages the connections)."""
        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self):
        """Dispose the engine and its pool."""
        await self.engine.dispose()

    async def create_all(self, metadata=None):
        """Create tables for the given metadata (SQLModel's by default)."""
        metadata = metadata if metadata is not None else SQLModel.metadata
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def get_session(self):
        async with self.session_factory() as session:
            yield session
