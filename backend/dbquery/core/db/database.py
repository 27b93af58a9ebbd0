"""
Database: one MySQL connection plus the placeholder query compiler.

Every query method takes a template and its positional arguments:

    db = Database()
    db.get_all("SELECT * FROM ?F WHERE status IN (?@)", "orders", ["new", "paid"])
    db.query("UPDATE ?F SET ?% WHERE id = ?", "orders", {"status": "paid"}, 10)

A call with no arguments sends the template unprocessed, so plain SQL may
contain ``?`` characters. The connection is opened lazily on first use.
Transactions nest: only the outermost begin/commit/rollback reach the server.
"""

import logging
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

import pymysql

from dbquery.core.db.connect import connect, cursor_to_dicts, execute, health_check
from dbquery.core.db.errors import DatabaseConnectionError, QueryError, TransactionError
from dbquery.engines.sql import QueryCompiler
from dbquery.models import ConnectionParams

_log = logging.getLogger(__name__)

T = TypeVar("T")


def _errno(exc: pymysql.MySQLError) -> int | None:
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None


class Database:
    """MySQL connection wrapper that compiles ``?`` templates before running them."""

    def __init__(
        self,
        params: ConnectionParams | dict[str, Any] | None = None,
        compiler: QueryCompiler | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if params is None:
            params = ConnectionParams.from_settings()
        elif isinstance(params, dict):
            params = ConnectionParams.model_validate(params)
        self._params: ConnectionParams = params
        self._connection: Any = None
        self._transactions = 0
        self._log = logger or _log
        self._set_compiler(compiler or QueryCompiler())

    def _set_compiler(self, compiler: QueryCompiler) -> None:
        self._compiler = compiler
        self._compiler.set_escaper(self.escape)

    # ------------------------------------------------------------------
    # Pickling: keep params and compiler, never the live connection
    # ------------------------------------------------------------------

    def __getstate__(self) -> dict[str, Any]:
        return {
            "params": self._params.model_dump(),
            "compiler": self._compiler,
            "logger": self._log,
        }

    def __setstate__(self, state: dict[str, Any]) -> None:
        self._params = ConnectionParams.model_validate(state["params"])
        self._connection = None
        self._transactions = 0
        self._log = state["logger"]
        self._set_compiler(state["compiler"])

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def params(self) -> ConnectionParams:
        return self._params

    def set_params(self, **overrides: Any) -> None:
        """Merge connection parameters; applies on the next connect()."""
        self._params = self._params.merged(**overrides)

    @property
    def compiler(self) -> QueryCompiler:
        return self._compiler

    @property
    def logger(self) -> logging.Logger:
        return self._log

    def connect(self) -> None:
        """Open the connection. Raises DatabaseConnectionError on failure."""
        start = time.monotonic()
        try:
            self._connection = connect(self._params)
        except pymysql.MySQLError as e:
            self._log.error(
                "Connection to mysql server failed: %s",
                e,
                extra={"connection": True, "errno": _errno(e)},
            )
            raise DatabaseConnectionError(str(e), _errno(e)) from e

        self._log.info(
            "Connection to mysql server",
            extra={
                "connection": True,
                "elapsed": time.monotonic() - start,
                "charset": self._params.charset,
            },
        )

    @property
    def connection(self) -> Any:
        if self._connection is None:
            self.connect()
        return self._connection

    def close(self) -> None:
        conn, self._connection = self._connection, None
        self._transactions = 0
        if conn is not None:
            conn.close()

    def is_alive(self) -> bool:
        return self._connection is not None and health_check(self._connection)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def escape(self, text: str) -> str:
        """Escape *text* for use inside a quoted string literal."""
        return self.connection.escape_string(text)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def compiled_query(self, query: str, *args: Any) -> str:
        """Compile *query* with *args*; with no args the query is returned as is."""
        if not args:
            return query
        return self._compiler.compile(query, args)

    def query(self, query: str, *args: Any) -> Any:
        """Run a query and return the cursor. Server errors raise QueryError."""
        sql = self.compiled_query(query, *args)
        conn = self.connection

        start = time.monotonic()
        try:
            cur = execute(conn, sql)
        except pymysql.MySQLError as e:
            self._log.error(
                "%s",
                sql,
                extra={
                    "query": True,
                    "elapsed": time.monotonic() - start,
                    "errno": _errno(e),
                    "error": str(e),
                },
            )
            raise QueryError(str(e), _errno(e)) from e

        self._log.info(
            "%s",
            sql,
            extra={
                "query": True,
                "elapsed": time.monotonic() - start,
                "affected_rows": cur.rowcount,
            },
        )
        return cur

    def get_one(self, query: str, *args: Any) -> Any:
        """First column of the first row, or None."""
        row = self.query(query, *args).fetchone()
        return None if row is None else row[0]

    def get_all(self, query: str, *args: Any) -> list[dict[str, Any]]:
        return cursor_to_dicts(self.query(query, *args))

    def get_row(self, query: str, *args: Any) -> dict[str, Any] | None:
        cur = self.query(query, *args)
        row = cur.fetchone()
        if row is None:
            return None
        names = [d[0] for d in cur.description]
        return dict(zip(names, row, strict=True))

    def get_col(self, query: str, *args: Any) -> list[Any]:
        return [row[0] for row in self.query(query, *args).fetchall()]

    def get_assoc(self, query: str, *args: Any) -> dict[Any, Any]:
        """
        Rows keyed by their first column.

        With exactly two columns the value is the second column, otherwise the
        whole row. Later rows win on duplicate keys.
        """
        rows = self.get_all(query, *args)
        if not rows:
            return {}
        keys = list(rows[0])
        if len(keys) == 2:
            return {row[keys[0]]: row[keys[1]] for row in rows}
        return {row[keys[0]]: row for row in rows}

    @property
    def inserted_id(self) -> int:
        return self.connection.insert_id()

    @property
    def affected_rows(self) -> int:
        return self.connection.affected_rows()

    def insert(self, query: str, *args: Any) -> int:
        """Run an INSERT and return the last inserted id."""
        self.query(query, *args)
        return self.inserted_id

    def _write_rows(
        self, verb: str, table: str, rows: Sequence[Mapping[str, Any]]
    ) -> Any:
        if not rows:
            return None
        values = [
            self.compiled_query("(?@)", list(row.values())) if row else "()"
            for row in rows
        ]
        return self.query(
            f"{verb} INTO ?F (?@F) VALUES ?N",
            table,
            list(rows[0].keys()),
            ",".join(values),
        )

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> Any:
        """Insert several rows in one statement; columns come from the first row."""
        return self._write_rows("INSERT", table, rows)

    def replace_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> Any:
        """Same as insert_rows with REPLACE."""
        return self._write_rows("REPLACE", table, rows)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def transaction_level(self) -> int:
        return self._transactions

    def begin_transaction(self) -> None:
        self._transactions += 1
        if self._transactions > 1:
            return
        self.connection.begin()
        self._log.debug("BEGIN")

    def commit(self) -> None:
        if self._transactions == 0:
            raise TransactionError("commit() without an active transaction")
        self._transactions -= 1
        if self._transactions > 0:
            return
        self.connection.commit()
        self._log.debug("COMMIT")

    def rollback(self) -> None:
        if self._transactions == 0:
            raise TransactionError("rollback() without an active transaction")
        self._transactions -= 1
        if self._transactions > 0:
            return
        self.connection.rollback()
        self._log.debug("ROLLBACK")

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """
        ``with db.transaction():`` commits on success, rolls back and re-raises
        on any error, KeyboardInterrupt included.
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def run_in_transaction(self, callback: Callable[[], T]) -> T:
        with self.transaction():
            return callback()
