"""
Errors raised by the MySQL connection wrapper.
"""


class DatabaseError(Exception):
    """Base class for connection wrapper errors; ``errno`` is the server code."""

    def __init__(self, message: str, errno: int | None = None) -> None:
        super().__init__(message)
        self.errno = errno


class DatabaseConnectionError(DatabaseError):
    """Raised when connecting or setting the connection charset fails."""

    pass


class QueryError(DatabaseError):
    """Raised when the server rejects a query."""

    pass


class TransactionError(DatabaseError):
    """Raised on commit/rollback without an open transaction."""

    pass
