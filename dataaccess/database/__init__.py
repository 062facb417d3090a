from .base import BaseDatabaseDriver
from .manager import DatabaseManager
from .sql_driver import SQLDriver

__all__ = ["BaseDatabaseDriver", "DatabaseManager", "SQLDriver"]
