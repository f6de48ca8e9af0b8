"""Request models for the Data API operations.

Only the fields rdsduck acts on are kept. ``resourceArn``, ``secretArn``
and other authentication fields are accepted and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ...binder import Parameter
from ...errors import BadRequestError, NotImplementedFeature
from ...executor import RecordsFormat

MAX_SQL_LENGTH = 65536


def _parse_sql(body: dict[str, Any]) -> str:
    sql = body.get("sql")
    if not isinstance(sql, str) or not sql.strip():
        raise BadRequestError("SQL statement is required")
    if len(sql) > MAX_SQL_LENGTH:
        raise BadRequestError("SQL statement exceeds maximum length")
    return sql


def _parse_database(body: dict[str, Any]) -> str | None:
    if body.get("schema"):
        raise NotImplementedFeature("Schema selection is not supported")
    if body.get("transactionId"):
        raise BadRequestError("Transactions are not supported")

    database = body.get("database")
    if database is not None and not isinstance(database, str):
        raise BadRequestError("database must be a string")
    return database or None


def _parse_parameters(items: Any) -> list[Parameter]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise BadRequestError("parameters must be a list")
    return [Parameter.from_json(item) for item in items]


@dataclass
class ExecuteRequest:
    sql: str
    parameters: list[Parameter] = field(default_factory=list)
    database: str | None = None
    format_records_as: RecordsFormat = RecordsFormat.NONE

    @classmethod
    def from_json(cls, body: dict[str, Any]) -> ExecuteRequest:
        """Build a request from the decoded ExecuteStatement body.

        Raises:
            BadRequestError: If the body is malformed
            NotImplementedFeature: If a schema is requested
        """
        format_records_as = body.get("formatRecordsAs") or RecordsFormat.NONE.value
        try:
            records_format = RecordsFormat(format_records_as)
        except ValueError:
            raise BadRequestError(
                f"Unsupported formatRecordsAs: {format_records_as}"
            ) from None

        return cls(
            sql=_parse_sql(body),
            parameters=_parse_parameters(body.get("parameters")),
            database=_parse_database(body),
            format_records_as=records_format,
        )


@dataclass
class BatchExecuteRequest:
    sql: str
    parameter_sets: list[list[Parameter]] = field(default_factory=list)
    database: str | None = None

    @classmethod
    def from_json(cls, body: dict[str, Any]) -> BatchExecuteRequest:
        """Build a request from the decoded BatchExecuteStatement body.

        Raises:
            BadRequestError: If the body is malformed
            NotImplementedFeature: If a schema is requested
        """
        parameter_sets = body.get("parameterSets")
        if parameter_sets is None:
            parameter_sets = []
        if not isinstance(parameter_sets, list):
            raise BadRequestError("parameterSets must be a list")

        return cls(
            sql=_parse_sql(body),
            parameter_sets=[_parse_parameters(items) for items in parameter_sets],
            database=_parse_database(body),
        )
