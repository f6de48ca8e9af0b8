import pytest

from rdsduck.codec import TypedValue
from rdsduck.connector import Cursor, StatementKind, classify_statement
from rdsduck.connector.cursor import TableRef, quote_qualified
from rdsduck.errors import SqlExecutionFailed


@pytest.mark.parametrize(
    "sql,kind",
    [
        ("SELECT 1", StatementKind.QUERY),
        ("WITH c AS (SELECT 1 AS x) SELECT * FROM c", StatementKind.QUERY),
        ("SELECT 1 UNION ALL SELECT 2", StatementKind.QUERY),
        ("UPDATE t SET a = ? WHERE id = ?", StatementKind.MUTATION),
        ("DELETE FROM t WHERE id = ?", StatementKind.MUTATION),
        ("INSERT INTO t VALUES (?) RETURNING id", StatementKind.QUERY),
        ("CREATE TABLE t (id INTEGER)", StatementKind.OTHER),
        ("DROP TABLE t", StatementKind.OTHER),
        ("BEGIN TRANSACTION", StatementKind.OTHER),
        ("", StatementKind.OTHER),
    ],
)
def test_classify_statement(sql, kind) -> None:
    assert classify_statement(sql)[0] is kind


def test_classify_insert_target() -> None:
    assert classify_statement("INSERT INTO t (a) VALUES (?)") == (
        StatementKind.MUTATION,
        TableRef(name="t"),
    )
    assert classify_statement("INSERT INTO db.s.t VALUES (?)") == (
        StatementKind.MUTATION,
        TableRef(name="t", schema="s", database="db"),
    )


def test_update_has_no_insert_target() -> None:
    assert classify_statement("UPDATE t SET a = 1")[1] is None


def test_quote_qualified() -> None:
    assert quote_qualified("db") == '"db"'
    assert quote_qualified("db.main") == '"db"."main"'
    assert quote_qualified('we"ird') == '"we""ird"'


class TestCursor:
    def test_query_returns_table(self, cursor: Cursor) -> None:
        outcome = cursor.execute("SELECT ? AS a, ? AS b", [1, "x"])
        assert outcome.table is not None
        assert outcome.table.column_names == ["a", "b"]
        assert outcome.table.to_pylist() == [{"a": 1, "b": "x"}]
        assert outcome.rows_updated == 0

    def test_mutation_reports_affected_rows(self, cursor: Cursor) -> None:
        cursor.execute("CREATE TABLE t (id INTEGER)")
        assert cursor.execute("INSERT INTO t VALUES (1), (2), (3)").rows_updated == 3

        outcome = cursor.execute("DELETE FROM t WHERE id > ?", [1])

        assert outcome.rows_updated == 2
        assert outcome.table is None
        assert outcome.generated_key is None

    def test_ddl_has_no_result(self, cursor: Cursor) -> None:
        outcome = cursor.execute("CREATE TABLE t (id INTEGER)")
        assert outcome.table is None
        assert outcome.rows_updated == 0

    def test_insert_reports_sequence_key(self, cursor: Cursor) -> None:
        cursor.execute("CREATE SEQUENCE seq START 10")
        cursor.execute("CREATE TABLE t (id BIGINT DEFAULT nextval('seq'), name VARCHAR)")

        first = cursor.execute("INSERT INTO t (name) VALUES (?);", ["a"])
        second = cursor.execute("INSERT INTO t (name) VALUES (?)", ["b"])

        assert first.generated_key == TypedValue.long(10)
        assert second.generated_key == TypedValue.long(11)
        assert second.rows_updated == 1

    def test_insert_without_sequence_has_no_key(self, cursor: Cursor) -> None:
        cursor.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name VARCHAR)")
        outcome = cursor.execute("INSERT INTO t VALUES (?, ?)", [1, "a"])
        assert outcome.generated_key is None
        assert outcome.rows_updated == 1

    def test_engine_errors_are_wrapped(self, cursor: Cursor) -> None:
        with pytest.raises(SqlExecutionFailed, match="missing_table"):
            cursor.execute("SELECT * FROM missing_table")

    def test_reset_restores_database(self, cursor: Cursor) -> None:
        cursor.execute("ATTACH ':memory:' AS other")
        cursor.execute("CREATE TABLE other.main.only_there (id INTEGER)")

        cursor.use_database("other")
        assert cursor.execute("SELECT count(*) AS n FROM only_there").table is not None

        cursor.reset()
        with pytest.raises(SqlExecutionFailed):
            cursor.execute("SELECT count(*) AS n FROM only_there")

    def test_reset_rolls_back_open_transaction(self, cursor: Cursor) -> None:
        cursor.execute("CREATE TABLE t (id INTEGER)")
        cursor.execute("BEGIN TRANSACTION")
        cursor.execute("INSERT INTO t VALUES (1)")

        cursor.reset()

        outcome = cursor.execute("SELECT count(*) AS n FROM t")
        assert outcome.table.to_pylist() == [{"n": 0}]

    def test_reset_without_transaction(self, cursor: Cursor) -> None:
        cursor.reset()
        cursor.reset()
        assert not cursor.is_closed()
