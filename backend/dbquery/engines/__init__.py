"""
Engines: SQL placeholder compiler and search helper.
"""

from dbquery.engines.sql import QueryCompiler, build_search_sql, compile_query

__all__ = [
    "QueryCompiler",
    "compile_query",
    "build_search_sql",
]
