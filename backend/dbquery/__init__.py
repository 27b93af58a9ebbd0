"""
pydbquery: MySQL access with a typed ``?`` placeholder query compiler.
"""

from dbquery.core.db import Database, SchemaEditor
from dbquery.engines.sql import (
    EscaperNotSetError,
    InvalidIdentifierError,
    PlaceholderCountError,
    PlaceholderTypeError,
    QueryCompiler,
    QueryCompilerError,
    compile_query,
)
from dbquery.models import ConnectionParams

__all__ = [
    "Database",
    "SchemaEditor",
    "ConnectionParams",
    "QueryCompiler",
    "compile_query",
    "QueryCompilerError",
    "PlaceholderCountError",
    "PlaceholderTypeError",
    "InvalidIdentifierError",
    "EscaperNotSetError",
]
