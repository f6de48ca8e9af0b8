import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, List

import duckdb

from ..errors import ConnectionUnavailable
from .connector import Connector
from .cursor import Cursor

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Bounded pool of DuckDB connections, checked out once per request.

    Connections are created lazily up to ``max_size``. A connection is
    reset before it goes back to the pool, so state such as the selected
    database never leaks from one request to the next.
    """

    def __init__(self, connector: Connector, max_size: int = 10, timeout: float = 30.0) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._connector = connector
        self._max_size = max_size
        self._timeout = timeout
        self._idle: List[Cursor] = []
        self._size = 0
        self._closed = False
        self._condition = threading.Condition()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def size(self) -> int:
        """Number of open connections, idle or checked out."""
        return self._size

    @property
    def idle(self) -> int:
        return len(self._idle)

    @contextmanager
    def acquire(self) -> Iterator[Cursor]:
        """Check out a connection for the duration of the block.

        The connection is returned on every exit path.

        Raises:
            ConnectionUnavailable: If the pool is closed, exhausted past the
                timeout, or a new connection cannot be opened.
        """
        cursor = self._checkout()
        try:
            yield cursor
        finally:
            self._release(cursor)

    def _checkout(self) -> Cursor:
        deadline = time.monotonic() + self._timeout
        with self._condition:
            while True:
                if self._closed:
                    raise ConnectionUnavailable("Connection pool is closed")
                if self._idle:
                    return self._idle.pop()
                if self._size < self._max_size:
                    self._size += 1
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ConnectionUnavailable(
                        f"No connection available within {self._timeout}s"
                    )
                self._condition.wait(remaining)

        try:
            cursor = self._connector.cursor()
        except ConnectionUnavailable:
            self._discard()
            raise
        logger.debug("Opened pooled connection (%d/%d)", self._size, self._max_size)
        return cursor

    def _release(self, cursor: Cursor) -> None:
        try:
            cursor.reset()
        except duckdb.Error as e:
            logger.warning("Discarding connection that failed to reset: %s", e)
            cursor.close()
            self._discard()
            return

        with self._condition:
            # close() may have run while the connection was out or resetting
            if not self._closed:
                self._idle.append(cursor)
                self._condition.notify()
                return
            self._size -= 1
            self._condition.notify()
        cursor.close()

    def _discard(self) -> None:
        with self._condition:
            self._size -= 1
            self._condition.notify()

    def close(self) -> None:
        """Close idle connections; checked-out ones are closed on return."""
        with self._condition:
            self._closed = True
            idle, self._idle = self._idle, []
            self._size -= len(idle)
            self._condition.notify_all()
        for cursor in idle:
            cursor.close()
