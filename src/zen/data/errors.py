"""Data layer error hierarchy."""

from zen.errors import ZenError


class DataError(ZenError):
    """Base for all zen.data errors."""


class ConnectionError(DataError):  # noqa: A001
    """Raised when a database connection cannot be established."""


class QueryError(DataError):
    """Raised when a SQL statement fails."""
