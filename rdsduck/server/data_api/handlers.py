"""HTTP request handlers for the Data API.

Handlers:
    execute_statement: POST /Execute
    batch_execute_statement: POST /BatchExecute
    dispatch_operation: POST / with an X-Amz-Target header
    fallback_route: anything else
"""

from __future__ import annotations

import gzip
import json
import logging
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ...binder import bind
from ...errors import BadRequestError
from ...executor import StatementExecutor
from .models import BatchExecuteRequest, ExecuteRequest

logger = logging.getLogger(__name__)


async def execute_statement(request: Request) -> JSONResponse:
    """Run a single SQL statement.

    POST /Execute

    Request Body:
        sql: SQL text with :name placeholders
        parameters: [{name, value: {<tag>: <payload>}, typeHint?}]
        database: Database to select (optional)
        formatRecordsAs: NONE (default) or JSON
    """
    statement = ExecuteRequest.from_json(await _read_json(request))
    logger.info(
        "Received ExecuteStatement request (database=%s, parameters=%d)",
        statement.database,
        len(statement.parameters),
    )
    logger.debug("SQL: %s", statement.sql)

    bound = bind(statement.parameters)
    result = await run_in_threadpool(
        _executor(request).execute_one,
        statement.sql,
        bound,
        statement.database,
        statement.format_records_as,
    )
    return JSONResponse(result.to_json())


async def batch_execute_statement(request: Request) -> JSONResponse:
    """Run one SQL statement once per parameter set.

    POST /BatchExecute

    Request Body:
        sql: SQL text with :name placeholders
        parameterSets: [[{name, value}, ...], ...]
        database: Database to select (optional)
    """
    batch = BatchExecuteRequest.from_json(await _read_json(request))
    logger.info(
        "Received BatchExecuteStatement request (database=%s, parameterSets=%d)",
        batch.database,
        len(batch.parameter_sets),
    )
    logger.debug("SQL: %s", batch.sql)

    bound_sets = [bind(parameters) for parameters in batch.parameter_sets]
    result = await run_in_threadpool(
        _executor(request).execute_batch,
        batch.sql,
        bound_sets,
        batch.database,
    )
    return JSONResponse(result.to_json())


OPERATIONS = {
    "ExecuteStatement": execute_statement,
    "BatchExecuteStatement": batch_execute_statement,
}


async def dispatch_operation(request: Request) -> JSONResponse:
    """Route by operation name, as sent by JSON-protocol AWS clients.

    POST /  with header ``X-Amz-Target: RdsDataService.ExecuteStatement``
    """
    target = request.headers.get("X-Amz-Target", "")
    handler = OPERATIONS.get(target.rsplit(".", 1)[-1])
    if handler is None:
        raise BadRequestError(f"Unknown operation: {target or '<missing>'}")
    return await handler(request)


async def fallback_route(request: Request) -> Response:
    """Fallback route to log unmatched requests."""
    logger.warning("Received unmatched request: %s %s", request.method, request.url)
    return JSONResponse(
        {"code": "NotFoundException", "message": "Route not found."},
        status_code=404,
    )


def _executor(request: Request) -> StatementExecutor:
    return request.app.state.executor


async def _read_json(request: Request) -> dict[str, Any]:
    body = await request.body()
    try:
        if request.headers.get("Content-Encoding") == "gzip":
            body = gzip.decompress(body)
        data = json.loads(body)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        raise BadRequestError("Request body is not valid JSON") from None

    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object")
    return data
