"""Unit tests for core.db.database.Database (pymysql connection mocked)."""

import logging
import pickle
from unittest.mock import MagicMock, patch

import pymysql
import pytest

from dbquery.core.db import Database, DatabaseConnectionError, QueryError, TransactionError
from dbquery.engines.sql import PlaceholderCountError, QueryCompiler
from tests.utils.sql import executed_sql


class TestConnection:
    def test_lazy_connect(self, mock_conn: MagicMock) -> None:
        with patch("dbquery.core.db.database.connect", return_value=mock_conn) as mock_connect:
            db = Database({"host": "db", "user": "u"})
            mock_connect.assert_not_called()
            db.query("SELECT 1")
            db.query("SELECT 2")
        mock_connect.assert_called_once_with(db.params)

    def test_connect_error(self) -> None:
        err = pymysql.err.OperationalError(2003, "Can't connect to MySQL server")
        with patch("dbquery.core.db.database.connect", side_effect=err):
            db = Database({"host": "nowhere"})
            with pytest.raises(DatabaseConnectionError) as exc_info:
                db.query("SELECT 1")
        assert exc_info.value.errno == 2003
        assert exc_info.value.__cause__ is err

    def test_set_params_merges(self) -> None:
        db = Database({"host": "a", "user": "u", "port": 3307})
        db.set_params(host="b")
        assert db.params.host == "b"
        assert db.params.port == 3307
        assert db.params.user == "u"

    def test_close(self, db: Database, mock_conn: MagicMock) -> None:
        db.query("SELECT 1")
        db.close()
        mock_conn.close.assert_called_once()
        db.close()
        mock_conn.close.assert_called_once()

    def test_context_manager_closes(self, db: Database, mock_conn: MagicMock) -> None:
        with db as same:
            same.query("SELECT 1")
        mock_conn.close.assert_called_once()

    def test_escape_uses_connection(self, db: Database, mock_conn: MagicMock) -> None:
        assert db.escape("it's") == "it\\'s"
        mock_conn.escape_string.assert_called_once_with("it's")

    def test_pickle_keeps_params_not_connection(self, db: Database) -> None:
        db.query("SELECT 1")
        clone = pickle.loads(pickle.dumps(db))
        assert clone.params == db.params
        assert clone.transaction_level == 0
        assert clone.compiler.escaper == clone.escape
        assert clone._connection is None


class TestQuery:
    def test_compiles_arguments(self, db: Database, mock_cursor: MagicMock) -> None:
        db.query("SELECT * FROM ?F WHERE id = ? AND tag IN (?@)", "t", 5, ["a", "b"])
        mock_cursor.execute.assert_called_once_with(
            "SELECT * FROM `t` WHERE id = '5' AND tag IN ('a','b')"
        )

    def test_without_arguments_sent_unprocessed(self, db: Database, mock_cursor: MagicMock) -> None:
        db.query("SELECT '?' AS q")
        mock_cursor.execute.assert_called_once_with("SELECT '?' AS q")

    def test_compiled_query(self, db: Database) -> None:
        assert db.compiled_query("?F") == "?F"
        assert db.compiled_query("?F", "a") == "`a`"

    def test_custom_compiler_gets_escaper(self, mock_conn: MagicMock) -> None:
        compiler = QueryCompiler()
        with patch("dbquery.core.db.database.connect", return_value=mock_conn):
            db = Database({"host": "db"}, compiler=compiler)
            assert compiler.compile("?", ["a'b"]) == "'a\\'b'"
        assert db.compiler is compiler

    def test_compile_error_does_not_execute(self, db: Database, mock_cursor: MagicMock) -> None:
        with pytest.raises(PlaceholderCountError):
            db.query("SELECT ? + ?", 1)
        mock_cursor.execute.assert_not_called()

    def test_server_error(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.execute.side_effect = pymysql.err.ProgrammingError(1064, "syntax error")
        with pytest.raises(QueryError) as exc_info:
            db.query("SELEC 1")
        assert exc_info.value.errno == 1064
        assert "syntax error" in str(exc_info.value)

    @patch("dbquery.core.db.connect.settings")
    def test_server_error_survives_failed_timeout_reset(
        self, mock_settings: MagicMock, db: Database, mock_conn: MagicMock
    ) -> None:
        mock_settings.EXTERNAL_DB_STATEMENT_TIMEOUT = 5
        query_cur = MagicMock()
        query_cur.execute.side_effect = pymysql.err.ProgrammingError(1064, "syntax error")
        reset_cur = MagicMock()
        reset_cur.execute.side_effect = pymysql.err.OperationalError(2013, "Lost connection")
        mock_conn.cursor.side_effect = [MagicMock(), query_cur, reset_cur]

        with pytest.raises(QueryError) as exc_info:
            db.query("SELEC 1")
        assert exc_info.value.errno == 1064
        assert "syntax error" in str(exc_info.value)

    def test_query_logged(self, db: Database, mock_cursor: MagicMock, caplog) -> None:
        mock_cursor.rowcount = 3
        with caplog.at_level(logging.INFO, logger="dbquery.core.db.database"):
            db.query("DELETE FROM ?F", "t")
        records = [r for r in caplog.records if r.getMessage() == "DELETE FROM `t`"]
        assert len(records) == 1
        assert records[0].affected_rows == 3
        assert records[0].elapsed >= 0

    def test_injected_logger(self, mock_conn: MagicMock) -> None:
        logger = MagicMock(spec=logging.Logger)
        with patch("dbquery.core.db.database.connect", return_value=mock_conn):
            db = Database({"host": "db"}, logger=logger)
            db.query("SELECT 1")
        assert db.logger is logger
        assert any(c.args[1:] == ("SELECT 1",) for c in logger.info.call_args_list)


class TestFetch:
    def test_get_one(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.fetchone.return_value = (42, "x")
        assert db.get_one("SELECT COUNT(*) FROM ?F", "t") == 42

    def test_get_one_empty(self, db: Database) -> None:
        assert db.get_one("SELECT id FROM t") is None

    def test_get_all(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.description = [("id",), ("name",)]
        mock_cursor.fetchall.return_value = [(1, "a"), (2, "b")]
        assert db.get_all("SELECT id, name FROM t") == [
            {"id": 1, "name": "a"},
            {"id": 2, "name": "b"},
        ]

    def test_get_row(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.description = [("id",), ("name",)]
        mock_cursor.fetchone.return_value = (1, "a")
        assert db.get_row("SELECT id, name FROM t WHERE id = ?", 1) == {"id": 1, "name": "a"}

    def test_get_row_empty(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.description = [("id",)]
        assert db.get_row("SELECT id FROM t WHERE 0") is None

    def test_get_col(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.fetchall.return_value = [(1,), (2,), (3,)]
        assert db.get_col("SELECT id FROM t") == [1, 2, 3]

    def test_get_assoc_two_columns(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.description = [("id",), ("name",)]
        mock_cursor.fetchall.return_value = [(1, "a"), (2, "b")]
        assert db.get_assoc("SELECT id, name FROM t") == {1: "a", 2: "b"}

    def test_get_assoc_more_columns(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.description = [("id",), ("name",), ("age",)]
        mock_cursor.fetchall.return_value = [(1, "a", 30)]
        assert db.get_assoc("SELECT id, name, age FROM t") == {
            1: {"id": 1, "name": "a", "age": 30}
        }

    def test_get_assoc_empty(self, db: Database, mock_cursor: MagicMock) -> None:
        mock_cursor.description = [("id",), ("name",)]
        assert db.get_assoc("SELECT id, name FROM t") == {}


class TestWrite:
    def test_insert_returns_id(self, db: Database, mock_conn: MagicMock, mock_cursor: MagicMock) -> None:
        mock_conn.insert_id.return_value = 17
        assert db.insert("INSERT INTO ?F SET ?%", "t", {"name": "a"}) == 17
        mock_cursor.execute.assert_called_once_with("INSERT INTO `t` SET `name`='a'")

    def test_affected_rows(self, db: Database, mock_conn: MagicMock) -> None:
        mock_conn.affected_rows.return_value = 2
        assert db.affected_rows == 2

    def test_insert_rows(self, db: Database, mock_cursor: MagicMock) -> None:
        db.insert_rows("t", [{"a": 1, "b": "x"}, {"a": 2, "b": None}])
        mock_cursor.execute.assert_called_once_with(
            "INSERT INTO `t` (`a`,`b`) VALUES ('1','x'),('2',NULL)"
        )

    def test_insert_rows_empty_row(self, db: Database, mock_cursor: MagicMock) -> None:
        db.insert_rows("t", [{}])
        mock_cursor.execute.assert_called_once_with("INSERT INTO `t` () VALUES ()")

    def test_insert_rows_nothing(self, db: Database, mock_cursor: MagicMock) -> None:
        assert db.insert_rows("t", []) is None
        mock_cursor.execute.assert_not_called()

    def test_replace_rows(self, db: Database, mock_cursor: MagicMock) -> None:
        db.replace_rows("t", [{"id": 1, "v": "a?b"}])
        assert executed_sql(mock_cursor) == ["REPLACE INTO `t` (`id`,`v`) VALUES ('1','a?b')"]


class TestTransactions:
    def test_nested_levels(self, db: Database, mock_conn: MagicMock) -> None:
        db.begin_transaction()
        db.begin_transaction()
        assert db.transaction_level == 2
        mock_conn.begin.assert_called_once()

        db.commit()
        mock_conn.commit.assert_not_called()
        db.commit()
        mock_conn.commit.assert_called_once()
        assert db.transaction_level == 0

    def test_inner_rollback_defers_to_outer(self, db: Database, mock_conn: MagicMock) -> None:
        db.begin_transaction()
        db.begin_transaction()
        db.rollback()
        mock_conn.rollback.assert_not_called()
        db.rollback()
        mock_conn.rollback.assert_called_once()

    def test_commit_without_transaction(self, db: Database) -> None:
        with pytest.raises(TransactionError):
            db.commit()
        with pytest.raises(TransactionError):
            db.rollback()

    def test_context_manager_commits(self, db: Database, mock_conn: MagicMock) -> None:
        with db.transaction():
            db.query("UPDATE t SET a = ?", 1)
            assert db.transaction_level == 1
        mock_conn.begin.assert_called_once()
        mock_conn.commit.assert_called_once()
        mock_conn.rollback.assert_not_called()

    def test_context_manager_rolls_back(self, db: Database, mock_conn: MagicMock) -> None:
        with pytest.raises(RuntimeError):
            with db.transaction():
                raise RuntimeError("boom")
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        assert db.transaction_level == 0

    def test_context_manager_rolls_back_on_interrupt(self, db: Database, mock_conn: MagicMock) -> None:
        with pytest.raises(KeyboardInterrupt):
            with db.transaction():
                raise KeyboardInterrupt
        mock_conn.rollback.assert_called_once()
        assert db.transaction_level == 0

        with db.transaction():
            pass
        assert mock_conn.begin.call_count == 2
        mock_conn.commit.assert_called_once()

    def test_run_in_transaction_returns_result(self, db: Database, mock_conn: MagicMock) -> None:
        assert db.run_in_transaction(lambda: "done") == "done"
        mock_conn.commit.assert_called_once()
