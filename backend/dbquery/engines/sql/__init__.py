"""
Placeholder query compiler.

Exports: QueryCompiler, compile_query, scan_placeholders, build_search_sql and
the compiler error types.
"""

from dbquery.engines.sql.compiler import QueryCompiler, compile_query
from dbquery.engines.sql.errors import (
    EscaperNotSetError,
    InvalidIdentifierError,
    PlaceholderCountError,
    PlaceholderTypeError,
    QueryCompilerError,
)
from dbquery.engines.sql.scanner import Placeholder, PlaceholderKind, scan_placeholders
from dbquery.engines.sql.search import build_search_sql

__all__ = [
    "QueryCompiler",
    "compile_query",
    "scan_placeholders",
    "Placeholder",
    "PlaceholderKind",
    "build_search_sql",
    "QueryCompilerError",
    "PlaceholderCountError",
    "PlaceholderTypeError",
    "InvalidIdentifierError",
    "EscaperNotSetError",
]
