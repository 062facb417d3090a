from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional

from dataaccess.logging.logger import get_logger
from dataaccess.repository.unit_of_work import RepositoryFactory, UnitOfWork
from .sql_driver import SQLDriver

logger = get_logger("database_manager")


class DatabaseManager:
    _instance = None

    def __init__(self, settings):
        self.sql = SQLDriver(settings.DATABASE_URL, echo=settings.DB_ECHO)

    @classmethod
    def get_instance(cls, settings=None):
        if cls._instance is None:
            if settings is None:
                from dataaccess.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    async def reset_instance(cls):
        """Dispose and forget the singleton (tests, reconfiguration)."""
        if cls._instance is not None:
            await cls._instance.sql.disconnect()
            cls._instance = None

    @asynccontextmanager
    async def unit_of_work(
        self, repositories: Optional[Mapping[type, RepositoryFactory]] = None
    ) -> AsyncIterator[UnitOfWork]:
        """UnitOfWork on a fresh session; session and open transaction are released on exit."""
        uow = UnitOfWork(self.sql.session_factory(), repositories=repositories)
        try:
            yield uow
        except Exception:
            logger.opt(exception=True).debug("UnitOfWork scope exited with an error")
            raise
        finally:
            await uow.close()
