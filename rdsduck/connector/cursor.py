import logging
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any, Self, Sequence

import duckdb
import pyarrow as pa
import sqlglot
from duckdb import DuckDBPyConnection
from sqlglot import exp

from ..codec import TypedValue, encode
from ..errors import SqlExecutionFailed

logger = logging.getLogger(__name__)

MUTATION_KEYS = frozenset(["insert", "update", "delete", "merge"])

# Statements that never produce a result set worth returning
NO_RESULT_KEYS = frozenset(
    [
        "alter",
        "altertable",
        "attach",
        "commit",
        "create",
        "detach",
        "drop",
        "rollback",
        "set",
        "transaction",
        "truncatetable",
        "use",
    ]
)

NO_RESULT_KEYWORDS = frozenset(
    [
        "ABORT",
        "ALTER",
        "ATTACH",
        "BEGIN",
        "CHECKPOINT",
        "COMMIT",
        "CREATE",
        "DETACH",
        "DROP",
        "END",
        "INSTALL",
        "LOAD",
        "RESET",
        "ROLLBACK",
        "SET",
        "START",
        "USE",
    ]
)

AUTO_INCREMENT_SQL = (
    "SELECT column_name FROM duckdb_columns() "
    "WHERE lower(table_name) = lower(?) "
    "AND lower(schema_name) = lower({schema}) "
    "AND lower(database_name) = lower({database}) "
    "AND column_default LIKE 'nextval(%' "
    "ORDER BY column_index LIMIT 1"
)


class StatementKind(Enum):
    QUERY = "query"
    MUTATION = "mutation"
    OTHER = "other"


@dataclass(frozen=True)
class TableRef:
    name: str
    schema: str | None = None
    database: str | None = None


@dataclass
class StatementOutcome:
    """What a single statement execution produced.

    Attributes:
        table: Result set for queries (None otherwise)
        rows_updated: Affected-row count reported for mutations
        generated_key: Auto-increment key of the first inserted row
    """

    table: pa.Table | None = None
    rows_updated: int = 0
    generated_key: TypedValue | None = None


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_qualified(name: str) -> str:
    """Quote each dot-separated part of a database[.schema] name."""
    return ".".join(quote_identifier(part) for part in name.split("."))


def _classify_keyword(sql: str) -> StatementKind:
    words = sql.split(None, 1)
    if not words:
        return StatementKind.OTHER

    keyword = words[0].upper()
    if keyword in ("INSERT", "UPDATE", "DELETE", "MERGE"):
        if "RETURNING" in sql.upper():
            return StatementKind.QUERY
        return StatementKind.MUTATION
    if keyword in NO_RESULT_KEYWORDS:
        return StatementKind.OTHER
    return StatementKind.QUERY


def classify_statement(sql: str) -> tuple[StatementKind, TableRef | None]:
    """Classify a statement and find the target table of an INSERT.

    Args:
        sql: Statement text (positional markers allowed)

    Returns:
        The statement kind and, for plain INSERTs, the table written to
    """
    try:
        expressions = [e for e in sqlglot.parse(sql, read="duckdb") if e is not None]
    except (sqlglot.errors.ParseError, sqlglot.errors.TokenError):
        logger.debug("Falling back to keyword classification for %r", sql)
        return _classify_keyword(sql), None

    if not expressions:
        return StatementKind.OTHER, None

    # DuckDB returns the result of the last statement
    expression = expressions[-1]
    if isinstance(expression, exp.Command):
        return _classify_keyword(expression.sql(dialect="duckdb")), None

    key = expression.key
    if key in MUTATION_KEYS:
        if expression.args.get("returning"):
            return StatementKind.QUERY, None
        return StatementKind.MUTATION, _insert_target(expression)
    if key in NO_RESULT_KEYS:
        return StatementKind.OTHER, None
    return StatementKind.QUERY, None


def _insert_target(expression: exp.Expression) -> TableRef | None:
    if not isinstance(expression, exp.Insert):
        return None

    target = expression.this
    if isinstance(target, exp.Schema):
        target = target.this
    if not isinstance(target, exp.Table) or not target.name:
        return None

    return TableRef(
        name=target.name,
        schema=target.db or None,
        database=target.catalog or None,
    )


class Cursor:
    """One DuckDB connection used for a single request at a time."""

    def __init__(self, duck_conn: DuckDBPyConnection) -> None:
        self._duck_cur = duck_conn
        self._is_closed = False
        self._changed_database = False
        self._default_database, self._default_schema = self._duck_cur.execute(
            "SELECT current_database(), current_schema()"
        ).fetchone()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _run(self, sql: str, params: Sequence[Any] | None = None) -> None:
        try:
            self._duck_cur.execute(sql, params)
        except duckdb.Error as e:
            message = str(e).split("\n")[0]
            logger.error("Failed to execute %r: %s", sql, message)
            raise SqlExecutionFailed(message) from e

    def use_database(self, database: str) -> None:
        """Select the database (catalog or schema) for later statements."""
        self._run(f"USE {quote_qualified(database)}")
        self._changed_database = True

    def execute(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> StatementOutcome:
        """Execute one statement with positional parameters.

        Args:
            sql: Statement text with ``?`` markers
            params: Values for the markers, in order

        Returns:
            StatementOutcome describing the result

        Raises:
            SqlExecutionFailed: If DuckDB rejects the statement
        """
        kind, target = classify_statement(sql)

        key_column = self._auto_increment_column(target) if target else None
        if key_column:
            # RETURNING goes last, after any ON CONFLICT clause
            sql = f"{sql.rstrip().rstrip(';')}\nRETURNING {quote_identifier(key_column)}"

        self._run(sql, params or None)

        if key_column:
            returned = self._duck_cur.fetch_arrow_table()
            generated_key = None
            if returned.num_rows:
                generated_key = encode(
                    returned.schema.field(0).type, returned.column(0)[0].as_py()
                )
            return StatementOutcome(
                rows_updated=returned.num_rows, generated_key=generated_key
            )

        if kind is StatementKind.MUTATION:
            row = self._duck_cur.fetchone()
            return StatementOutcome(rows_updated=int(row[0]) if row else 0)

        if kind is StatementKind.OTHER or self._duck_cur.description is None:
            return StatementOutcome()

        return StatementOutcome(table=self._duck_cur.fetch_arrow_table())

    def _auto_increment_column(self, target: TableRef) -> str | None:
        """Name of the sequence-backed column of a table, if it has one."""
        params: list[Any] = [target.name]
        schema = "current_schema()"
        database = "current_database()"
        if target.schema:
            schema = "?"
            params.append(target.schema)
        if target.database:
            database = "?"
            params.append(target.database)

        self._run(AUTO_INCREMENT_SQL.format(schema=schema, database=database), params)
        row = self._duck_cur.fetchone()
        return row[0] if row else None

    def reset(self) -> None:
        """Return the connection to its initial state.

        Rolls back a transaction left open by the last request and
        restores the default database and schema.
        """
        try:
            self._duck_cur.execute("ROLLBACK")
        except duckdb.TransactionException as e:
            if "no transaction is active" not in str(e):
                raise

        if self._changed_database:
            self._duck_cur.execute(
                f"USE {quote_identifier(self._default_database)}"
                f".{quote_identifier(self._default_schema)}"
            )
            self._changed_database = False

    def is_closed(self) -> bool:
        return self._is_closed

    def close(self) -> None:
        if self._is_closed:
            return
        self._is_closed = True
        self._duck_cur.close()
