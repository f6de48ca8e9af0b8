"""Statement execution for ExecuteStatement and BatchExecuteStatement.

Each call checks one connection out of the pool, optionally selects a
database, and runs the statement(s) on that connection. Batches run in
input order and stop at the first failing entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

from .binder import prepare_statement
from .codec import TypedValue
from .connector import ConnectionPool, Cursor
from .errors import BatchExecutionFailed, EmptyBatch, SqlExecutionFailed
from .formatter import (
    ColumnMetadata,
    build_column_metadata,
    format_json_records,
    format_result,
)

logger = logging.getLogger(__name__)


class RecordsFormat(str, Enum):
    NONE = "NONE"
    JSON = "JSON"


@dataclass
class ExecuteResult:
    column_metadata: list[ColumnMetadata] = field(default_factory=list)
    records: list[list[TypedValue]] = field(default_factory=list)
    number_of_records_updated: int = 0
    generated_fields: list[TypedValue] = field(default_factory=list)
    formatted_records: str | None = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "columnMetadata": self.column_metadata,
            "numberOfRecordsUpdated": self.number_of_records_updated,
            "generatedFields": [v.to_json() for v in self.generated_fields],
        }
        if self.formatted_records is not None:
            data["formattedRecords"] = self.formatted_records
        else:
            data["records"] = [[v.to_json() for v in row] for row in self.records]
        return data


@dataclass
class UpdateResult:
    generated_fields: list[TypedValue] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {"generatedFields": [v.to_json() for v in self.generated_fields]}


@dataclass
class BatchExecuteResult:
    update_results: list[UpdateResult] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {"updateResults": [r.to_json() for r in self.update_results]}


class StatementExecutor:
    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    def execute_one(
        self,
        sql: str,
        bound: Mapping[str, Any],
        database: str | None = None,
        records_format: RecordsFormat = RecordsFormat.NONE,
    ) -> ExecuteResult:
        """Run one statement.

        Args:
            sql: Statement text with ``:name`` placeholders
            bound: Bound parameter values by name
            database: Database to select before running the statement
            records_format: NONE for typed records, JSON for formattedRecords

        Returns:
            ExecuteResult with records for queries, or the affected-row
            count for mutations

        Raises:
            SqlExecutionFailed: If the statement fails
            ConnectionUnavailable: If no connection can be checked out
        """
        prepared = prepare_statement(sql)
        arguments = prepared.arguments(bound)
        logger.debug("Executing %r with %d parameter(s)", prepared.sql, len(arguments))

        with self._pool.acquire() as cursor:
            _select_database(cursor, database)
            outcome = cursor.execute(prepared.sql, arguments)

        result = ExecuteResult(number_of_records_updated=outcome.rows_updated)
        if outcome.generated_key is not None:
            result.generated_fields = [outcome.generated_key]

        if outcome.table is not None:
            result.number_of_records_updated = 0
            if records_format is RecordsFormat.JSON:
                result.column_metadata = build_column_metadata(outcome.table.schema)
                result.formatted_records = format_json_records(outcome.table)
            else:
                result.column_metadata, result.records = format_result(outcome.table)
            logger.debug("Statement returned %d record(s)", outcome.table.num_rows)

        return result

    def execute_batch(
        self,
        sql: str,
        bound_sets: Sequence[Mapping[str, Any]],
        database: str | None = None,
    ) -> BatchExecuteResult:
        """Run one statement once per parameter set, in order.

        Statements run in auto-commit mode: entries before a failing one
        stay applied.

        Raises:
            EmptyBatch: If there are no parameter sets
            BatchExecutionFailed: At the first failing entry
            ConnectionUnavailable: If no connection can be checked out
        """
        if not bound_sets:
            raise EmptyBatch()

        prepared = prepare_statement(sql)
        result = BatchExecuteResult()

        with self._pool.acquire() as cursor:
            _select_database(cursor, database)
            for index, bound in enumerate(bound_sets):
                try:
                    outcome = cursor.execute(prepared.sql, prepared.arguments(bound))
                except SqlExecutionFailed as e:
                    logger.error("Batch aborted at entry %d of %d", index, len(bound_sets))
                    raise BatchExecutionFailed(index, e) from e

                generated = []
                if outcome.generated_key is not None:
                    generated.append(outcome.generated_key)
                result.update_results.append(UpdateResult(generated_fields=generated))

        logger.debug("Batch executed %d statement(s)", len(bound_sets))
        return result


def _select_database(cursor: Cursor, database: str | None) -> None:
    if database:
        cursor.use_database(database)
