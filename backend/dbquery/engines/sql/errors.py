"""
Errors raised by the query compiler.

All of them are logical errors in the caller's template or arguments: they are
never transient and a failed ``compile`` call produces no output.
"""

from __future__ import annotations


class QueryCompilerError(ValueError):
    """Base class for query compilation failures."""

    def __init__(self, message: str, *, ordinal: int | None = None) -> None:
        super().__init__(message)
        self.ordinal = ordinal


class PlaceholderCountError(QueryCompilerError):
    """Raised when the template has more placeholders than arguments."""

    pass


class PlaceholderTypeError(QueryCompilerError, TypeError):
    """Raised when an argument's type is not accepted by its placeholder kind."""

    def __init__(
        self,
        message: str,
        *,
        ordinal: int | None = None,
        actual_type: str | None = None,
    ) -> None:
        super().__init__(message, ordinal=ordinal)
        self.actual_type = actual_type


class InvalidIdentifierError(QueryCompilerError):
    """Raised when an identifier is empty, blank, ``*`` or not a str/int."""

    def __init__(
        self,
        message: str,
        *,
        ordinal: int | None = None,
        actual_type: str | None = None,
    ) -> None:
        super().__init__(message, ordinal=ordinal)
        self.actual_type = actual_type


class EscaperNotSetError(QueryCompilerError):
    """Raised when ``compile`` is called before an escaper was registered."""

    pass
