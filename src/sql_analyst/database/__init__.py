"""
Database Module
===============

Relational database executors.
"""

from sql_analyst.database.base import DatabaseExecutor
from sql_analyst.database.sqlite import SQLiteExecutor


def create_executor(url: str, min_size: int = 1, max_size: int = 10) -> DatabaseExecutor:
    """
    Build an executor from a database URL.

    Args:
        url: ``sqlite:///path/to/file.db`` or ``postgresql://...``
        min_size: Minimum pooled connections (PostgreSQL only)
        max_size: Maximum pooled connections (PostgreSQL only)

    Returns:
        A configured DatabaseExecutor
    """
    if url.startswith("sqlite:///"):
        return SQLiteExecutor(url[len("sqlite:///"):])
    if url.startswith(("postgresql://", "postgres://")):
        from sql_analyst.database.postgres import PostgresExecutor

        return PostgresExecutor(url, min_size=min_size, max_size=max_size)
    raise ValueError(f"Unsupported database URL: {url!r}")


__all__ = [
    "DatabaseExecutor",
    "SQLiteExecutor",
    "create_executor",
]
