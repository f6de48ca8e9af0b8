import threading
from urllib.parse import parse_qsl, urlparse

import duckdb

from ..errors import ConnectionUnavailable
from .cursor import Cursor

MEMORY = ":memory:"


def parse_database_url(url: str) -> tuple[str, dict[str, str]]:
    """Split a database URL into a DuckDB database path and config options.

    Accepted forms:
        ":memory:" or ""                  -> in-memory database
        "duckdb:///:memory:"              -> in-memory database
        "duckdb:///relative/path.db"      -> file relative to the working dir
        "duckdb:////absolute/path.db"     -> absolute file path
        "path/to/file.db"                 -> file path
    Query parameters (e.g. ``?threads=4``) become DuckDB config options.

    Raises:
        ValueError: If the URL uses a scheme other than duckdb
    """
    if not url or url == MEMORY:
        return MEMORY, {}

    parsed = urlparse(url)
    if not parsed.scheme or len(parsed.scheme) == 1:
        # Plain path (a single-letter scheme is a Windows drive)
        return url, {}
    if parsed.scheme != "duckdb":
        raise ValueError(f"Unsupported database URL scheme: {parsed.scheme}")

    path = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    return path or MEMORY, dict(parse_qsl(parsed.query))


class Connector:
    def __init__(
        self,
        database: str = MEMORY,
        timezone: str = "UTC",
        config: dict[str, str] | None = None,
    ):
        """
        Opens the DuckDB database shared by all pooled connections.

        Args:
            database: The DuckDB database file to use. Defaults to ':memory:' (transient).
            timezone: The default timezone to set for connections.
            config: Extra DuckDB configuration options.
        """
        self._database = database
        self._lock = threading.Lock()
        self._duck_conn: duckdb.DuckDBPyConnection | None = duckdb.connect(
            database=database, config=config or {}
        )
        escaped = timezone.replace("'", "''")
        self._duck_conn.execute(f"SET GLOBAL TimeZone = '{escaped}'")

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "Connector":
        database, config = parse_database_url(url)
        return cls(database=database, config=config, **kwargs)

    @property
    def database(self) -> str:
        return self._database

    def cursor(self) -> Cursor:
        """
        Open a new connection to the shared database instance.

        Raises:
            ConnectionUnavailable: If the connector is closed or DuckDB refuses the connection.
        """
        with self._lock:
            if self._duck_conn is None:
                raise ConnectionUnavailable("Database is closed")
            try:
                duck_cur = self._duck_conn.cursor()
            except duckdb.Error as e:
                raise ConnectionUnavailable(f"Failed to connect: {e}") from e

        try:
            return Cursor(duck_cur)
        except duckdb.Error as e:
            duck_cur.close()
            raise ConnectionUnavailable(f"Failed to connect: {e}") from e

    def is_closed(self) -> bool:
        return self._duck_conn is None

    def close(self) -> None:
        """
        Close the shared DuckDB connection.
        """
        with self._lock:
            if self._duck_conn is not None:
                self._duck_conn.close()
                self._duck_conn = None
