import argparse
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from starlette.applications import Starlette
from uvicorn import run

from ..connector import ConnectionPool, Connector
from ..executor import StatementExecutor
from . import shared
from .data_api import get_data_api_routes
from .middleware import ErrorHandlingMiddleware

logger = logging.getLogger(__name__)


def create_app(
    connector: Connector | None = None,
    pool_size: int | None = None,
    pool_timeout: float | None = None,
    debug: bool = False,
) -> Starlette:
    """Create the Data API application.

    Args:
        connector: Database to serve. Defaults to RDSDUCK_DATABASE_URL.
        pool_size: Maximum pooled connections. Defaults to RDSDUCK_POOL_SIZE.
        pool_timeout: Seconds to wait for a connection. Defaults to RDSDUCK_POOL_TIMEOUT.
        debug: Starlette debug mode.
    """
    owns_connector = connector is None
    if connector is None:
        connector = Connector.from_url(shared.DATABASE_URL)

    pool = ConnectionPool(
        connector,
        max_size=pool_size if pool_size is not None else shared.POOL_SIZE,
        timeout=pool_timeout if pool_timeout is not None else shared.POOL_TIMEOUT,
    )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info("Serving %s with up to %d connections", connector.database, pool.max_size)
        yield
        pool.close()
        if owns_connector:
            connector.close()

    app = Starlette(debug=debug, routes=get_data_api_routes(), lifespan=lifespan)
    app.state.executor = StatementExecutor(pool)
    app.add_middleware(ErrorHandlingMiddleware)
    return app


app = create_app()


# CLI Entry Point
def main() -> None:
    parser = argparse.ArgumentParser(description="Run the rdsduck Data API server.")

    parser.add_argument(
        "--host", type=str, default=shared.HOST, help=f"Host to run the server on (default: {shared.HOST})"
    )

    parser.add_argument(
        "--port", type=int, default=shared.PORT, help=f"Port to run the server on (default: {shared.PORT})"
    )

    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="DuckDB database URL or path (default: RDSDUCK_DATABASE_URL or :memory:)",
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug mode (default: False)"
    )

    args = parser.parse_args()

    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    server_app = app
    if args.database_url is not None:
        server_app = create_app(Connector.from_url(args.database_url), debug=args.debug)
    else:
        server_app.debug = args.debug

    # Run the server with the provided arguments
    run(server_app, host=args.host, port=args.port, log_level=logging.getLevelName(level).lower())


if __name__ == "__main__":
    main()
