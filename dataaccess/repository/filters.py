"""
Entity-level global query filters (e.g. soft delete), applied to every ORM
SELECT through the session unless the statement opts out with the
``ignore_query_filters`` execution option.
"""

from typing import Any, Callable, Dict, Type
from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

IGNORE_QUERY_FILTERS = "ignore_query_filters"

_global_filters: Dict[type, Callable[[Type[Any]], Any]] = {}


def register_global_filter(model: type, criteria: Callable[[Type[Any]], Any]) -> None:
    """Register ``criteria`` (a lambda receiving the class, e.g. ``lambda cls: cls.deleted_at.is_(None)``) for ``model``."""
    _global_filters[model] = criteria


def unregister_global_filter(model: type) -> None:
    _global_filters.pop(model, None)


def clear_global_filters() -> None:
    _global_filters.clear()


def get_global_filters() -> Dict[type, Callable[[Type[Any]], Any]]:
    return dict(_global_filters)


@event.listens_for(Session, "do_orm_execute")
def _apply_global_filters(execute_state: ORMExecuteState) -> None:
    if (
        not _global_filters
        or not execute_state.is_select
        # Relationship and column loads inherit the criteria of the parent query
        or execute_state.is_column_load
        or execute_state.is_relationship_load
        or execute_state.execution_options.get(IGNORE_QUERY_FILTERS, False)
    ):
        return

    execute_state.statement = execute_state.statement.options(
        *(
            with_loader_criteria(model, criteria, include_aliases=True)
            for model, criteria in _global_filters.items()
        )
    )
