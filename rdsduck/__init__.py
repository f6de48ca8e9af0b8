from .binder import Parameter, PreparedStatement, bind, prepare_statement
from .codec import ColumnTypeHint, TypedValue, TypeHint, ValueKind, decode, encode
from .connector import ConnectionPool, Connector
from .errors import (
    BadRequestError,
    BatchExecutionFailed,
    ConnectionUnavailable,
    DataApiError,
    DuplicateParameterName,
    EmptyBatch,
    NotImplementedFeature,
    SqlExecutionFailed,
    UnsupportedValueKind,
)
from .executor import (
    BatchExecuteResult,
    ExecuteResult,
    RecordsFormat,
    StatementExecutor,
    UpdateResult,
)
from .formatter import format_result

__all__ = [
    "BadRequestError",
    "BatchExecuteResult",
    "BatchExecutionFailed",
    "ColumnTypeHint",
    "ConnectionPool",
    "ConnectionUnavailable",
    "Connector",
    "DataApiError",
    "DuplicateParameterName",
    "EmptyBatch",
    "ExecuteResult",
    "NotImplementedFeature",
    "Parameter",
    "PreparedStatement",
    "RecordsFormat",
    "SqlExecutionFailed",
    "StatementExecutor",
    "TypeHint",
    "TypedValue",
    "UnsupportedValueKind",
    "UpdateResult",
    "ValueKind",
    "bind",
    "decode",
    "encode",
    "format_result",
    "prepare_statement",
]
