"""
Repository pattern: data access abstraction, decouples callers from the database session.
"""

from .base import Repository
from .filters import (
    IGNORE_QUERY_FILTERS,
    clear_global_filters,
    register_global_filter,
    unregister_global_filter,
)
from .pagination import PaginatedList
from .query import QuerySpec, get_property_name
from .tracking import DISABLE_TRACKING
from .unit_of_work import UnitOfWork

__all__ = [
    "DISABLE_TRACKING",
    "IGNORE_QUERY_FILTERS",
    "PaginatedList",
    "QuerySpec",
    "Repository",
    "UnitOfWork",
    "clear_global_filters",
    "get_property_name",
    "register_global_filter",
    "unregister_global_filter",
]
