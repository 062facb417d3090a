"""
Data access error hierarchy.

Store-layer errors (sqlalchemy.exc.SQLAlchemyError) are never wrapped; they
reach the caller as raised by the session.
"""

from typing import Any, Optional


class DataAccessError(Exception):
    """Base class for errors raised by the data access layer itself."""
    def __init__(self, message: str, code: int = 400, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail


class RepositoryConstructionError(DataAccessError, TypeError):
    """A repository could not be built for the requested entity type."""
    def __init__(self, model: Any, message: Optional[str] = None):
        name = getattr(model, "__name__", repr(model))
        super().__init__(message or f"Failed to create a repository for {name}", code=500, detail=name)
        self.model = model


class InvalidPropertyExpression(DataAccessError, ValueError):
    """An expression given where a direct member access was expected."""
    def __init__(self, param_name: str, expression: Any, message: Optional[str] = None):
        super().__init__(
            message or f"Expression must be a member expression (parameter '{param_name}', got {expression!r})",
            detail=param_name,
        )
        self.param_name = param_name
        self.expression = expression


class InvalidPageRequest(DataAccessError, ValueError):
    """Non-positive page index or page size."""
    def __init__(self, page_index: int, page_size: int):
        super().__init__(
            f"Page index and page size must be positive integers (page_index={page_index}, page_size={page_size})",
            detail={"page_index": page_index, "page_size": page_size},
        )
        self.page_index = page_index
        self.page_size = page_size
