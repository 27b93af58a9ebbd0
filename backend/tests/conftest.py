from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from pymysql.converters import escape_string

from dbquery.core.db import Database


@pytest.fixture
def mock_cursor() -> MagicMock:
    cur = MagicMock()
    cur.rowcount = 0
    cur.description = None
    cur.fetchone.return_value = None
    cur.fetchall.return_value = []
    return cur


@pytest.fixture
def mock_conn(mock_cursor: MagicMock) -> MagicMock:
    conn = MagicMock()
    conn.cursor.return_value = mock_cursor
    conn.escape_string.side_effect = escape_string
    return conn


@pytest.fixture
def db(mock_conn: MagicMock) -> Generator[Database, None, None]:
    """Database whose pymysql connection is a MagicMock."""
    with patch("dbquery.core.db.database.connect", return_value=mock_conn):
        yield Database({"host": "db", "user": "u", "password": "p", "database": "app"})
