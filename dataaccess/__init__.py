"""
Unit of Work and generic Repository over SQLModel / SQLAlchemy asyncio sessions.
"""

from dataaccess.repository import PaginatedList, QuerySpec, Repository, UnitOfWork

__version__ = "1.0.0"

__all__ = ["PaginatedList", "QuerySpec", "Repository", "UnitOfWork"]
