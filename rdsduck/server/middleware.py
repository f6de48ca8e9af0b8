"""Middleware classes for the rdsduck server.

Converts errors raised while handling a request into the JSON failure
body returned to Data API clients.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..errors import DataApiError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to handle errors globally.

    DataApiError subclasses become a JSON body with their status code.
    Anything else is logged and reported as a generic server error.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except DataApiError as e:
            logger.info(
                "%s %s failed with %s: %s",
                request.method,
                request.url.path,
                e.code,
                e.message,
            )
            return JSONResponse(
                {"code": e.code, "message": e.message},
                status_code=e.status_code,
            )
        except Exception:
            logger.exception("Unhandled error during %s %s", request.method, request.url.path)
            return JSONResponse(
                {
                    "code": "InternalServerErrorException",
                    "message": "An internal error occurred.",
                },
                status_code=500,
            )
