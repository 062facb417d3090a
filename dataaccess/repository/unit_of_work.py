"""
Unit of Work: owns one session, caches one repository per entity type and
tracks an optional explicit transaction.
"""

import asyncio
from typing import Callable, Dict, Mapping, Optional, Type, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSessionTransaction
from sqlmodel.ext.asyncio.session import AsyncSession

from dataaccess.exceptions import RepositoryConstructionError
from dataaccess.logging.logger import get_logger
from .base import Repository
from .shielding import run_to_completion

T = TypeVar("T")

RepositoryFactory = Callable[[AsyncSession], Repository]

logger = get_logger("unit_of_work")


class UnitOfWork:
    """
    Shares one session between lazily created repositories.

    Writes staged through repositories reach the store only on save_changes().
    Transactions are independent of saving: inside begin_transaction() the
    expected sequence is save_changes() then commit(). Use as an async context
    manager so the session and any open transaction are released on every
    exit path; leaving the scope never saves.
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        repositories: Optional[Mapping[type, RepositoryFactory]] = None,
    ):
        """Initialize UnitOfWork; session must be provided (e.g. UnitOfWork.from_session())."""
        if session is None:
            raise ValueError("Session must be provided. Use UnitOfWork.from_session() or pass session explicitly.")

        self._session = session
        self._factories: Dict[type, RepositoryFactory] = dict(repositories or {})
        self._repositories: Dict[type, Repository] = {}
        self._transaction: Optional[AsyncSessionTransaction] = None
        self._closed = False

    @classmethod
    async def from_session(cls, session: AsyncSession) -> "UnitOfWork":
        """Create UnitOfWork from an existing session."""
        return cls(session=session)

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def has_active_transaction(self) -> bool:
        return self._transaction is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def register_repository(self, model: type, factory: RepositoryFactory) -> None:
        """Use ``factory(session)`` to build the repository for ``model`` (e.g. a Repository subclass)."""
        self._factories[model] = factory

    def get_repository(self, model: Type[T]) -> Repository[T]:
        """Get or create the repository for ``model`` (one instance per model)."""
        repository = self._repositories.get(model)
        if repository is None:
            repository = self._create_repository(model)
            self._repositories[model] = repository
        return repository

    def _create_repository(self, model: type) -> Repository:
        factory = self._factories.get(model)
        try:
            if factory is None:
                repository = Repository(self._session, model)
            else:
                repository = factory(self._session)
        except RepositoryConstructionError:
            raise
        except Exception as exc:
            raise RepositoryConstructionError(model) from exc

        if not isinstance(repository, Repository):
            raise RepositoryConstructionError(
                model, f"Factory for {model.__name__} returned {type(repository).__name__}, not a Repository"
            )
        logger.debug(f"Repository created for {model.__name__}")
        return repository

    async def save_changes(self) -> int:
        """
        Flush staged inserts, updates and deletes; return the number of entities written.

        Without an explicit transaction the flush is committed. Inside one it is
        only flushed, and becomes durable on commit().
        """
        session = self._session
        written = (
            len(session.new)
            + len(session.deleted)
            + sum(1 for entity in session.dirty if session.is_modified(entity))
        )
        await run_to_completion(self._write(in_transaction=self._transaction is not None))

        logger.debug(f"Saved changes | Entities: {written} | In transaction: {self._transaction is not None}")
        return written

    async def _write(self, in_transaction: bool) -> None:
        session = self._session
        try:
            if in_transaction:
                await session.flush()
            else:
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save changes: {str(e)}")
            if not in_transaction:
                # Implicit transaction: reset the session before re-raising
                await session.rollback()
            raise

    async def begin_transaction(self) -> None:
        """
        Open a transaction; any stored handle is overwritten without checks.

        A transaction the session already began implicitly (e.g. for a read) is
        adopted as the explicit one.
        """
        current = self._session.get_transaction()
        if current is not None:
            self._transaction = current
        else:
            self._transaction = await run_to_completion(self._session.begin())
        logger.debug("Transaction started")

    async def commit(self) -> None:
        """
        Commit the active transaction; no-op when none is active.

        On failure the handle is kept so the caller can still rollback().
        """
        if self._transaction is None:
            return
        try:
            await run_to_completion(self._transaction.commit())
        except asyncio.CancelledError:
            if self._session.get_transaction() is None:
                # The commit itself completed
                self._transaction = None
            raise
        except SQLAlchemyError as e:
            logger.error(f"Transaction commit failed: {str(e)}")
            raise
        self._transaction = None
        logger.debug("Transaction committed")

    async def rollback(self) -> None:
        """Roll back the active transaction; no-op when none is active."""
        if self._transaction is None:
            return
        transaction = self._transaction
        try:
            await run_to_completion(transaction.rollback())
        finally:
            self._transaction = None
        logger.debug("Transaction rolled back")

    async def close(self) -> None:
        """Release the open transaction (rolled back) and the session. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._transaction is not None:
                logger.warning("Closing UnitOfWork with an open transaction; rolling back")
                await self.rollback()
        finally:
            self._repositories.clear()
            await run_to_completion(self._session.close())

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
