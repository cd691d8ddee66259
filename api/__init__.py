"""HTTP API for the SQL analyst."""

from sql_analyst import __version__

__all__ = ["__version__"]
