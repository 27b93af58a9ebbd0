"""
MySQL connection helpers (pymysql).

connect() opens a connection from ConnectionParams or a dict; execute() runs a
final SQL string and returns the cursor, applying the optional per-statement
timeout from settings.
"""

from typing import Any

import pymysql

from dbquery.core.config import settings
from dbquery.models import ConnectionParams


def _resolve_params(params: ConnectionParams | dict[str, Any] | None) -> ConnectionParams:
    if params is None:
        return ConnectionParams.from_settings()
    if isinstance(params, dict):
        return ConnectionParams.model_validate(params)
    return params


def connect(params: ConnectionParams | dict[str, Any] | None = None) -> Any:
    """
    Open a connection to the MySQL server.

    - params: ConnectionParams or dict with host, port, user, password,
      database, charset, connect_timeout. None -> values from settings.
    """
    p = _resolve_params(params)
    kwargs: dict[str, Any] = {
        "host": p.host,
        "port": p.port,
        "user": p.user,
        "password": p.password,
        "connect_timeout": p.connect_timeout,
        "autocommit": True,
    }
    if p.database:
        kwargs["database"] = p.database
    if p.charset:
        kwargs["charset"] = p.charset
    return pymysql.connect(**kwargs)


def execute(conn: Any, sql: str) -> Any:
    """
    Execute a final SQL string and return the cursor. Caller uses
    cursor_to_dicts(cursor) or cursor.rowcount.

    When EXTERNAL_DB_STATEMENT_TIMEOUT is set, MySQL max_execution_time is set
    (in ms) before the query and reset after. A failing reset never hides the
    error raised by the query itself.
    """
    timeout_sec = settings.EXTERNAL_DB_STATEMENT_TIMEOUT
    use_timeout = timeout_sec is not None and timeout_sec > 0

    if use_timeout:
        timeout_ms = int(timeout_sec * 1000)
        cur_set = conn.cursor()
        try:
            cur_set.execute("SET SESSION max_execution_time = %s", (timeout_ms,))
        finally:
            try:
                cur_set.close()
            except Exception:
                pass

    cur = conn.cursor()
    try:
        cur.execute(sql)
    finally:
        if use_timeout:
            try:
                cur_reset = conn.cursor()
                cur_reset.execute("SET SESSION max_execution_time = 0")
                cur_reset.close()
            except Exception:
                pass

    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def health_check(conn: Any) -> bool:
    """Run SELECT 1 and return True if no exception."""
    cur = None
    try:
        cur = execute(conn, "SELECT 1")
        cur.fetchone()
        return True
    except Exception:
        return False
    finally:
        if cur is not None:
            cur.close()
