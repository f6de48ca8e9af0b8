"""Conversion between Data API typed values and DuckDB values.

Requests carry values as single-key JSON objects such as
``{"longValue": 1}`` or ``{"isNull": true}``. Results are returned in the
same shape, with the tag chosen from the Arrow type DuckDB reports for the
column.
"""

from __future__ import annotations

import base64
import binascii
import datetime
import decimal
import json
import math
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import pyarrow as pa

from .errors import BadRequestError, UnsupportedValueKind

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    """Wire tags of a typed value."""

    IS_NULL = "isNull"
    STRING = "stringValue"
    LONG = "longValue"
    DOUBLE = "doubleValue"
    BOOLEAN = "booleanValue"
    BLOB = "blobValue"


class ColumnTypeHint(str, Enum):
    STRING = "STRING"
    LONG = "LONG"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    BLOB = "BLOB"


class TypeHint(str, Enum):
    """Parameter type hints for values sent as strings."""

    DATE = "DATE"
    DECIMAL = "DECIMAL"
    JSON = "JSON"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    UUID = "UUID"


@dataclass(frozen=True)
class TypedValue:
    """One protocol-level value. Exactly one tag is populated.

    Attributes:
        kind: The populated tag
        value: The payload (None for IS_NULL, bytes for BLOB)
    """

    kind: ValueKind
    value: Any = None

    @classmethod
    def null(cls) -> TypedValue:
        return cls(ValueKind.IS_NULL)

    @classmethod
    def string(cls, value: str) -> TypedValue:
        return cls(ValueKind.STRING, value)

    @classmethod
    def long(cls, value: int) -> TypedValue:
        return cls(ValueKind.LONG, value)

    @classmethod
    def double(cls, value: float) -> TypedValue:
        return cls(ValueKind.DOUBLE, value)

    @classmethod
    def boolean(cls, value: bool) -> TypedValue:
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def blob(cls, value: bytes) -> TypedValue:
        return cls(ValueKind.BLOB, value)

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.IS_NULL

    @classmethod
    def from_json(cls, data: Any) -> TypedValue:
        """Parse the wire form of a value.

        Args:
            data: A JSON object with exactly one tag

        Returns:
            The parsed TypedValue

        Raises:
            UnsupportedValueKind: If the tag is not one this layer translates
            BadRequestError: If the object is malformed
        """
        if not isinstance(data, dict) or len(data) != 1:
            raise BadRequestError("A value must be an object with exactly one field")

        ((tag, payload),) = data.items()
        try:
            kind = ValueKind(tag)
        except ValueError:
            raise UnsupportedValueKind(tag) from None

        return cls(kind, _PAYLOAD_PARSERS[kind](payload))

    def to_json(self) -> dict[str, Any]:
        if self.kind is ValueKind.IS_NULL:
            return {"isNull": True}
        if self.kind is ValueKind.BLOB:
            return {"blobValue": base64.b64encode(self.value).decode("ascii")}
        return {self.kind.value: self.value}


def _parse_null(payload: Any) -> None:
    if payload is not True:
        raise BadRequestError("isNull must be true when present")
    return None


def _parse_string(payload: Any) -> str:
    if not isinstance(payload, str):
        raise BadRequestError("stringValue must be a string")
    return payload


def _parse_long(payload: Any) -> int:
    if isinstance(payload, bool) or not isinstance(payload, int):
        raise BadRequestError("longValue must be an integer")
    if not INT64_MIN <= payload <= INT64_MAX:
        raise BadRequestError("longValue is out of the 64-bit range")
    return payload


def _parse_double(payload: Any) -> float:
    if isinstance(payload, bool) or not isinstance(payload, (int, float)):
        raise BadRequestError("doubleValue must be a number")
    try:
        number = float(payload)
    except OverflowError:
        raise BadRequestError("doubleValue is out of range") from None
    if not math.isfinite(number):
        raise BadRequestError("doubleValue must be a finite number")
    return number


def _parse_boolean(payload: Any) -> bool:
    if not isinstance(payload, bool):
        raise BadRequestError("booleanValue must be a boolean")
    return payload


def _parse_blob(payload: Any) -> bytes:
    if not isinstance(payload, str):
        raise BadRequestError("blobValue must be a base64 string")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error:
        raise BadRequestError("blobValue is not valid base64") from None


_PAYLOAD_PARSERS: dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.IS_NULL: _parse_null,
    ValueKind.STRING: _parse_string,
    ValueKind.LONG: _parse_long,
    ValueKind.DOUBLE: _parse_double,
    ValueKind.BOOLEAN: _parse_boolean,
    ValueKind.BLOB: _parse_blob,
}


_HINT_CONVERTERS: dict[TypeHint, Callable[[str], Any]] = {
    TypeHint.DATE: datetime.date.fromisoformat,
    TypeHint.DECIMAL: decimal.Decimal,
    TypeHint.JSON: str,
    TypeHint.TIME: datetime.time.fromisoformat,
    TypeHint.TIMESTAMP: datetime.datetime.fromisoformat,
    TypeHint.UUID: uuid.UUID,
}


def decode(value: TypedValue, type_hint: TypeHint | None = None) -> Any:
    """Convert a typed value into a DuckDB parameter value.

    Args:
        value: The typed value from the request
        type_hint: Optional hint applied to string values

    Returns:
        None, str, int, float, bool or bytes (or the hinted type)
    """
    kind = value.kind
    if kind is ValueKind.IS_NULL:
        return None
    if kind is ValueKind.STRING:
        if type_hint is None:
            return value.value
        try:
            return _HINT_CONVERTERS[type_hint](value.value)
        except (ValueError, decimal.InvalidOperation):
            raise BadRequestError(
                f"Value {value.value!r} is not a valid {type_hint.value}"
            ) from None
    if kind is ValueKind.LONG:
        return int(value.value)
    if kind is ValueKind.DOUBLE:
        return float(value.value)
    if kind is ValueKind.BOOLEAN:
        return bool(value.value)
    if kind is ValueKind.BLOB:
        return bytes(value.value)
    raise UnsupportedValueKind(str(kind))


def column_type_hint(arrow_type: pa.DataType) -> ColumnTypeHint:
    """Pick the value tag that best matches a column type.

    DuckDB hands HUGEINT (the result type of ``sum()`` over integers) to
    Arrow as ``decimal128(38, 0)``, so decimals without a fractional part
    count as integers.
    """
    if pa.types.is_dictionary(arrow_type):
        arrow_type = arrow_type.value_type

    if pa.types.is_integer(arrow_type):
        return ColumnTypeHint.LONG
    if pa.types.is_decimal(arrow_type) and arrow_type.scale == 0:
        return ColumnTypeHint.LONG
    if pa.types.is_floating(arrow_type) or pa.types.is_decimal(arrow_type):
        return ColumnTypeHint.DOUBLE
    if pa.types.is_boolean(arrow_type):
        return ColumnTypeHint.BOOLEAN
    if (
        pa.types.is_binary(arrow_type)
        or pa.types.is_large_binary(arrow_type)
        or pa.types.is_fixed_size_binary(arrow_type)
    ):
        return ColumnTypeHint.BLOB
    return ColumnTypeHint.STRING


def encode(arrow_type: pa.DataType, value: Any) -> TypedValue:
    """Convert a result cell into a typed value.

    Args:
        arrow_type: The column's Arrow type as reported by DuckDB
        value: The Python value of the cell

    Returns:
        TypedValue: isNull for SQL NULL, otherwise the tag chosen by
        column_type_hint. Integers outside the 64-bit range and non-finite
        doubles ("NaN", "Infinity", "-Infinity") are returned as strings.
    """
    if value is None:
        return TypedValue.null()

    hint = column_type_hint(arrow_type)
    if hint is ColumnTypeHint.LONG:
        number = int(value)
        if INT64_MIN <= number <= INT64_MAX:
            return TypedValue.long(number)
        return TypedValue.string(str(number))
    if hint is ColumnTypeHint.DOUBLE:
        number = float(value)
        if math.isfinite(number):
            return TypedValue.double(number)
        return TypedValue.string(non_finite_text(number))
    if hint is ColumnTypeHint.BOOLEAN:
        return TypedValue.boolean(bool(value))
    if hint is ColumnTypeHint.BLOB:
        return TypedValue.blob(bytes(value))
    return TypedValue.string(to_text(value))


def non_finite_text(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    return "Infinity" if number > 0 else "-Infinity"


def to_text(value: Any) -> str:
    """Textual form of a value returned as stringValue."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict, tuple)):
        return json.dumps(value, default=str)
    if isinstance(value, bytes):
        return value.hex()
    # str() gives "YYYY-MM-DD HH:MM:SS" for datetimes
    return str(value)
