"""rdsduck Server - RDS Data API compatible REST API backed by DuckDB.

Modules:
    server: Application factory and CLI entry point
    data_api: ExecuteStatement / BatchExecuteStatement routes and handlers
    middleware: HTTP middleware (error handling)
    shared: Environment configuration
"""

from .data_api import get_data_api_routes
from .middleware import ErrorHandlingMiddleware
from .server import app, create_app

__all__ = [
    # Application
    "app",
    "create_app",
    # Routes
    "get_data_api_routes",
    # Middleware
    "ErrorHandlingMiddleware",
]
