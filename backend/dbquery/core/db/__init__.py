"""
MySQL access: connection helpers, the Database wrapper and DDL helpers.

Uses pymysql; every query template goes through the placeholder compiler.
"""

from .connect import connect, cursor_to_dicts, execute, health_check
from .database import Database
from .errors import DatabaseConnectionError, DatabaseError, QueryError, TransactionError
from .schema import FieldDefinition, ForeignKey, ForeignKeyTarget, SchemaEditor, TableChanges

__all__ = [
    "connect",
    "execute",
    "cursor_to_dicts",
    "health_check",
    "Database",
    "SchemaEditor",
    "FieldDefinition",
    "ForeignKey",
    "ForeignKeyTarget",
    "TableChanges",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "TransactionError",
]
