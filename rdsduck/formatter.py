"""Result set formatting.

Turns the Arrow table DuckDB returns for a query into the
``columnMetadata`` and ``records`` sections of an ExecuteStatement
response.
"""

from __future__ import annotations

import json
import math
from typing import Any, TypedDict

import pyarrow as pa

from .codec import (
    ColumnTypeHint,
    TypedValue,
    column_type_hint,
    encode,
    non_finite_text,
    to_text,
)


class ColumnMetadata(TypedDict):
    """Metadata for one result column."""

    name: str
    typeHint: str


def build_column_metadata(schema: pa.Schema) -> list[ColumnMetadata]:
    return [
        {"name": field.name, "typeHint": column_type_hint(field.type).value}
        for field in schema
    ]


def format_result(
    table: pa.Table,
) -> tuple[list[ColumnMetadata], list[list[TypedValue]]]:
    """Encode a result table.

    Column and row order are kept exactly as DuckDB returned them.

    Args:
        table: The query result

    Returns:
        Column metadata and one list of typed values per row
    """
    column_metadata = build_column_metadata(table.schema)

    # Column-wise conversion keeps duplicate column names apart
    columns = [
        [encode(field.type, value) for value in table.column(i).to_pylist()]
        for i, field in enumerate(table.schema)
    ]
    records = [list(row) for row in zip(*columns)]

    return column_metadata, records


def _json_cell(hint: ColumnTypeHint, value: Any) -> Any:
    if value is None:
        return None
    if hint is ColumnTypeHint.LONG:
        return int(value)
    if hint is ColumnTypeHint.DOUBLE:
        number = float(value)
        return number if math.isfinite(number) else non_finite_text(number)
    if isinstance(value, (bool, str, list, dict)):
        return value
    if isinstance(value, bytes):
        return value.hex()
    return to_text(value)


def format_json_records(table: pa.Table) -> str:
    """Render a result table as a JSON array of objects keyed by column name.

    This is the ``formattedRecords`` form requested with
    ``formatRecordsAs: JSON``.
    """
    names = table.schema.names
    hints = [column_type_hint(field.type) for field in table.schema]
    columns = [table.column(i).to_pylist() for i in range(table.num_columns)]
    rows = [
        {
            name: _json_cell(hint, value)
            for name, hint, value in zip(names, hints, row)
        }
        for row in zip(*columns)
    ]
    return json.dumps(rows, default=str)
