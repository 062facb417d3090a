"""
Generic repository: staged writes, composed reads and pagination for one
entity type over a shared session.
"""

from typing import Any, Generic, List, Optional, Type, TypeVar, Union
from sqlalchemy import func, inspect as sa_inspect
from sqlalchemy.orm import Mapper, make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified, set_committed_value
from sqlmodel import Session, SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from dataaccess.config import settings
from dataaccess.exceptions import InvalidPropertyExpression, RepositoryConstructionError
from .pagination import PaginatedList, page_offset, validate_page
from .query import Include, OrderBy, Predicate, QuerySpec, get_property_name
from .shielding import run_to_completion

T = TypeVar("T", bound=SQLModel)

SessionLike = Union[Session, AsyncSession]


class Repository(Generic[T]):
    """
    Read/write gateway for one entity type.

    Writes (insert, update, attach, remove, update_fields) only stage changes on
    the session; nothing reaches the store until the owning UnitOfWork saves.

    Async operations need an AsyncSession. The sync twins run on a plain
    ``sqlmodel.Session``, or on an AsyncSession from inside
    ``AsyncSession.run_sync``.
    """

    def __init__(self, session: SessionLike, model: Type[T]):
        """Initialize repository with session and model."""
        mapper = sa_inspect(model, raiseerr=False)
        if not isinstance(mapper, Mapper):
            raise RepositoryConstructionError(model, f"{getattr(model, '__name__', model)!s} is not a mapped table model")
        self.session = session
        self.model = model
        self._mapper: Mapper = mapper

    @property
    def _sync_session(self) -> Session:
        if isinstance(self.session, AsyncSession):
            return self.session.sync_session
        return self.session

    @property
    def _async_session(self) -> AsyncSession:
        if not isinstance(self.session, AsyncSession):
            raise TypeError(f"{type(self).__name__} async operations require an AsyncSession")
        return self.session

    def change_table(self, table: str) -> None:
        raise NotImplementedError("change_table is not supported")

    # --- Writes (staged) ---

    def insert(self, entity: T) -> T:
        """Stage entity for insertion."""
        self._sync_session.add(entity)
        return entity

    async def insert_async(self, entity: T) -> T:
        """Stage entity for insertion."""
        return self.insert(entity)

    def attach(self, entity: T) -> None:
        """Register entity with the session as unchanged."""
        session = self._sync_session
        if entity in session:
            return

        state = sa_inspect(entity)
        if state.transient:
            if any(value is None for value in self._mapper.primary_key_from_instance(entity)):
                # No identity yet: attaching means inserting
                session.add(entity)
                return
            # Resets attribute history, as if freshly loaded
            make_transient_to_detached(entity)
        elif state.detached:
            for attr in self._mapper.column_attrs:
                if attr.key in state.dict:
                    set_committed_value(entity, attr.key, state.dict[attr.key])
        session.add(entity)

    def update(self, entity: T) -> None:
        """Stage a full update: every non-key column is written at flush."""
        self.attach(entity)
        state = sa_inspect(entity)
        if state.pending:
            return
        for key in self._column_keys(include_primary_key=False):
            if key in state.dict:
                flag_modified(entity, key)

    def update_fields(self, entity: T, *updated_properties: Any) -> None:
        """
        Stage an update of only the given columns.

        Properties are mapped attributes (``Product.name``) or lambdas
        (``lambda p: p.name``). Other columns keep their stored values even when
        the in-memory entity holds stale ones.
        """
        columns = self._column_keys(include_primary_key=False)
        names = []
        for prop in updated_properties:
            name = self.get_property_name(prop, param_name="updated_properties")
            if name not in columns:
                raise InvalidPropertyExpression(
                    "updated_properties", prop, f"'{name}' is not an updatable column of {self.model.__name__}"
                )
            names.append(name)

        self.attach(entity)
        for name in names:
            flag_modified(entity, name)

    def get_property_name(self, property_expression: Any, param_name: str = "property_expression") -> str:
        return get_property_name(property_expression, model=self.model, param_name=param_name)

    def remove(self, entity: T) -> None:
        """Stage deletion."""
        self.attach(entity)
        if not self._discard_pending(entity):
            self._sync_session.delete(entity)

    async def remove_async(self, entity: T) -> None:
        """Stage deletion; cascades needing a load run asynchronously."""
        self.attach(entity)
        if not self._discard_pending(entity):
            await run_to_completion(self._async_session.delete(entity))

    def _discard_pending(self, entity: T) -> bool:
        # Never-saved entities are simply unstaged
        state = sa_inspect(entity)
        if state.pending:
            self._sync_session.expunge(entity)
            return True
        return False

    def _column_keys(self, include_primary_key: bool = True) -> List[str]:
        primary_keys = {self._mapper.get_property_by_column(column).key for column in self._mapper.primary_key}
        return [
            attr.key for attr in self._mapper.column_attrs
            if include_primary_key or attr.key not in primary_keys
        ]

    # --- Lookups ---

    def find(self, *key_values: Any) -> Optional[T]:
        """Get entity by primary key (identity map first)."""
        return self._sync_session.get(self.model, self._identity(key_values))

    async def find_async(self, *key_values: Any) -> Optional[T]:
        """Get entity by primary key (identity map first)."""
        return await run_to_completion(self._async_session.get(self.model, self._identity(key_values)))

    @staticmethod
    def _identity(key_values):
        return key_values[0] if len(key_values) == 1 else tuple(key_values)

    # --- Query composition ---

    def get_all(
        self,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
    ):
        """
        Composed, unexecuted SELECT for the given options.

        With ``disable_tracking`` the statement returns detached entities on
        whichever session executes it.
        """
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        return spec.compose(self.model)

    async def get_all_async(
        self,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
    ) -> List[T]:
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        result = await self._execute_async(spec.compose(self.model))
        return list(result.all())

    def get_first_or_default(
        self,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
    ) -> Optional[T]:
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        return self._execute(spec.compose(self.model).limit(1)).first()

    async def get_first_or_default_async(
        self,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
    ) -> Optional[T]:
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        result = await self._execute_async(spec.compose(self.model).limit(1))
        return result.first()

    def get_first_or_default_selector(
        self,
        selector: Any = None,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
    ) -> Any:
        """
        First match projected through ``selector``: a column, a tuple of columns,
        or a callable receiving the model class and returning either.
        Without a selector, or when it selects the model itself, the first full
        entity is returned.
        """
        columns = self._resolve_selector(selector)
        if columns is None:
            return self.get_first_or_default(predicate, include, order_by, disable_tracking, ignore_query_filters)
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        return self._execute(self._projection(spec, columns).limit(1)).first()

    async def get_first_or_default_selector_async(
        self,
        selector: Any = None,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
    ) -> Any:
        columns = self._resolve_selector(selector)
        if columns is None:
            return await self.get_first_or_default_async(
                predicate, include, order_by, disable_tracking, ignore_query_filters
            )
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        result = await self._execute_async(self._projection(spec, columns).limit(1))
        return result.first()

    def _resolve_selector(self, selector: Any):
        """Columns to project, or None when the entity itself is selected."""
        if callable(selector) and not isinstance(selector, type) and not hasattr(selector, "__clause_element__"):
            selector = selector(self.model)
        if selector is None or selector is self.model:
            return None
        if isinstance(selector, type):
            raise InvalidPropertyExpression(
                "selector", selector, f"Selector must project columns of {self.model.__name__}, got {selector.__name__}"
            )
        return selector

    def _projection(self, spec: QuerySpec, selector: Any):
        columns = selector if isinstance(selector, (list, tuple)) else (selector,)
        # Projections return plain values: nothing to eager load
        return spec.compose(self.model, select(*columns).select_from(self.model), eager_load=False)

    # --- Counting and pagination ---

    def count(
        self,
        predicate: Optional[Predicate] = None,
        ignore_query_filters: bool = False,
    ) -> int:
        spec = QuerySpec(predicate=predicate, ignore_query_filters=ignore_query_filters)
        return self._execute(self._count_statement(spec)).one()

    async def count_async(
        self,
        predicate: Optional[Predicate] = None,
        ignore_query_filters: bool = False,
    ) -> int:
        spec = QuerySpec(predicate=predicate, ignore_query_filters=ignore_query_filters)
        result = await self._execute_async(self._count_statement(spec))
        return result.one()

    def _count_statement(self, spec: QuerySpec):
        matching = spec.compose(self.model, eager_load=False).order_by(None)
        return spec.apply_filter_bypass(select(func.count()).select_from(matching.subquery()))

    def get_to_page_list(
        self,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
        page_size: Optional[int] = None,
        page_index: Optional[int] = None,
    ) -> PaginatedList[T]:
        page_size, page_index = self._page_arguments(page_size, page_index)
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        total_count = self._execute(self._count_statement(spec)).one()
        items = self._execute(self._page_statement(spec, page_size, page_index)).all()
        return PaginatedList(items=list(items), page_index=page_index, page_size=page_size, total_count=total_count)

    async def get_to_page_list_async(
        self,
        predicate: Optional[Predicate] = None,
        include: Optional[Include] = None,
        order_by: Optional[OrderBy] = None,
        disable_tracking: bool = False,
        ignore_query_filters: bool = False,
        page_size: Optional[int] = None,
        page_index: Optional[int] = None,
    ) -> PaginatedList[T]:
        page_size, page_index = self._page_arguments(page_size, page_index)
        spec = QuerySpec(predicate, include, order_by, disable_tracking, ignore_query_filters)
        total_count = (await self._execute_async(self._count_statement(spec))).one()
        items = (await self._execute_async(self._page_statement(spec, page_size, page_index))).all()
        return PaginatedList(items=list(items), page_index=page_index, page_size=page_size, total_count=total_count)

    @staticmethod
    def _page_arguments(page_size: Optional[int], page_index: Optional[int]):
        page_size = settings.DEFAULT_PAGE_SIZE if page_size is None else page_size
        page_index = settings.DEFAULT_PAGE_INDEX if page_index is None else page_index
        validate_page(page_index, page_size)
        return page_size, page_index

    def _page_statement(self, spec: QuerySpec, page_size: int, page_index: int):
        return spec.compose(self.model).offset(page_offset(page_index, page_size)).limit(page_size)

    # --- Execution ---

    def _execute(self, statement):
        """Run a read on the owner session without flushing staged writes."""
        session = self._sync_session
        with session.no_autoflush:
            return session.exec(statement)

    async def _execute_async(self, statement):
        session = self._async_session
        with session.sync_session.no_autoflush:
            return await run_to_completion(session.exec(statement))
