from abc import ABC, abstractmethod
from typing import AsyncIterator

from sqlmodel.ext.asyncio.session import AsyncSession


class BaseDatabaseDriver(ABC):
    """Owns an engine and hands out sessions for units of work."""

    @abstractmethod
    async def connect(self):
        """Verify the store is reachable."""

    @abstractmethod
    async def disconnect(self):
        """Release pooled connections."""

    @abstractmethod
    async def create_all(self, metadata=None):
        """Create the tables described by ``metadata``."""

    @abstractmethod
    def get_session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session that is closed when the consumer is done."""
