"""Error types raised by the Data API translation layer.

Every error carries the HTTP status code and a short error code that the
server middleware uses to build the JSON failure body.
"""

from __future__ import annotations


class DataApiError(Exception):
    """Base class for errors surfaced to the HTTP boundary."""

    status_code: int = 500
    code: str = "InternalServerErrorException"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(DataApiError):
    """The request body could not be translated into a statement."""

    status_code = 400
    code = "BadRequestException"


class UnsupportedValueKind(BadRequestError):
    """A typed value uses a tag this layer cannot translate (e.g. arrayValue)."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported value kind: {kind}")
        self.kind = kind


class DuplicateParameterName(BadRequestError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate parameter: {name}")
        self.name = name


class EmptyBatch(BadRequestError):
    def __init__(self) -> None:
        super().__init__("Parameter sets must not be empty")


class NotImplementedFeature(DataApiError):
    status_code = 501
    code = "NotImplementedException"


class SqlExecutionFailed(DataApiError):
    """The SQL engine rejected or failed to run a statement."""

    code = "DatabaseErrorException"


class BatchExecutionFailed(SqlExecutionFailed):
    """A batch entry failed; the remaining entries were not executed."""

    def __init__(self, index: int, cause: SqlExecutionFailed) -> None:
        super().__init__(f"Batch entry {index} failed: {cause.message}")
        self.index = index
        self.cause = cause


class ConnectionUnavailable(DataApiError):
    """No database connection could be checked out of the pool."""

    status_code = 503
    code = "ServiceUnavailableError"
