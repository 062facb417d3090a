from .errors import (
    DataAccessError,
    InvalidPageRequest,
    InvalidPropertyExpression,
    RepositoryConstructionError,
)

__all__ = [
    "DataAccessError",
    "InvalidPageRequest",
    "InvalidPropertyExpression",
    "RepositoryConstructionError",
]
