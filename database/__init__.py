"""Database package: models, repositories and the DatabaseManager facade."""
from .manager import DatabaseManager
from .connection import DatabaseConnection

__all__ = ["DatabaseManager", "DatabaseConnection"]
