"""Parameter binding for Data API statements.

Statements reference parameters as ``:name``. Before execution the SQL
text is rewritten to DuckDB's positional ``?`` markers and the bound
values are lined up in placeholder order, so parameter values never
become part of the SQL text.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .codec import TypedValue, TypeHint, decode
from .errors import BadRequestError, DuplicateParameterName, SqlExecutionFailed

_IDENT_START = frozenset(string.ascii_letters + "_")
_IDENT_CHARS = _IDENT_START | frozenset(string.digits)
_QUOTES = "'\"`"


@dataclass(frozen=True)
class Parameter:
    """A named parameter of a statement."""

    name: str
    value: TypedValue
    type_hint: TypeHint | None = None

    @classmethod
    def from_json(cls, data: Any) -> Parameter:
        if not isinstance(data, dict):
            raise BadRequestError("A parameter must be an object")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise BadRequestError("A parameter must have a non-empty name")
        if "value" not in data:
            raise BadRequestError(f"Parameter {name} has no value")

        type_hint = data.get("typeHint")
        if type_hint is not None:
            try:
                type_hint = TypeHint(type_hint)
            except ValueError:
                raise BadRequestError(f"Unknown type hint: {type_hint}") from None

        return cls(
            name=name,
            value=TypedValue.from_json(data["value"]),
            type_hint=type_hint,
        )


def bind(parameters: Sequence[Parameter]) -> dict[str, Any]:
    """Validate and decode a statement's parameter list.

    Args:
        parameters: Parameters in request order

    Returns:
        Mapping of parameter name to DuckDB value, in request order

    Raises:
        DuplicateParameterName: If two parameters share a name
    """
    bound: dict[str, Any] = {}
    for parameter in parameters:
        if parameter.name in bound:
            raise DuplicateParameterName(parameter.name)
        bound[parameter.name] = decode(parameter.value, parameter.type_hint)
    return bound


@dataclass(frozen=True)
class PreparedStatement:
    """SQL text with positional markers and the parameter name of each marker."""

    sql: str
    names: tuple[str, ...]

    def arguments(self, bound: Mapping[str, Any]) -> list[Any]:
        """Positional argument list for the given bound parameters.

        Bound names that the SQL does not reference are ignored.

        Raises:
            SqlExecutionFailed: If a placeholder has no bound value
        """
        missing = [name for name in self.names if name not in bound]
        if missing:
            raise SqlExecutionFailed(f"Missing parameter: {missing[0]}")
        return [bound[name] for name in self.names]


def prepare_statement(sql: str) -> PreparedStatement:
    """Rewrite ``:name`` placeholders to ``?``.

    String literals, quoted identifiers, comments and ``::`` casts are
    left untouched. A name used twice yields two positional markers.

    Example:
        >>> prepare_statement("SELECT * FROM t WHERE id = :id")
        PreparedStatement(sql='SELECT * FROM t WHERE id = ?', names=('id',))
    """
    chunks: list[str] = []
    names: list[str] = []
    length = len(sql)
    start = 0
    i = 0

    while i < length:
        ch = sql[i]
        if ch in _QUOTES:
            i = _skip_quoted(sql, i)
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            i = length if end == -1 else end + 1
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = length if end == -1 else end + 2
        elif sql.startswith("::", i):
            i += 2
        elif (
            ch == ":"
            and i + 1 < length
            and sql[i + 1] in _IDENT_START
            and (i == 0 or sql[i - 1] not in _IDENT_CHARS)
        ):
            end = i + 2
            while end < length and sql[end] in _IDENT_CHARS:
                end += 1
            chunks.append(sql[start:i])
            chunks.append("?")
            names.append(sql[i + 1 : end])
            start = i = end
        else:
            i += 1

    chunks.append(sql[start:])
    return PreparedStatement("".join(chunks), tuple(names))


def _skip_quoted(sql: str, start: int) -> int:
    """Index just past the quoted section opened at ``start``.

    A doubled quote character inside the section is an escaped quote.
    An unterminated section runs to the end of the text.
    """
    quote = sql[start]
    i = start + 1
    while i < len(sql):
        if sql[i] == quote:
            if i + 1 < len(sql) and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return len(sql)
