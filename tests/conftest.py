from typing import Iterator

import pytest

from rdsduck.connector import ConnectionPool, Connector, Cursor
from rdsduck.executor import StatementExecutor


@pytest.fixture
def connector() -> Iterator[Connector]:
    """Provides an in-memory database for testing."""
    connector = Connector(":memory:")
    yield connector
    connector.close()


@pytest.fixture
def cursor(connector: Connector) -> Iterator[Cursor]:
    with connector.cursor() as cur:
        yield cur


@pytest.fixture
def pool(connector: Connector) -> Iterator[ConnectionPool]:
    pool = ConnectionPool(connector, max_size=4, timeout=1.0)
    yield pool
    pool.close()


@pytest.fixture
def executor(pool: ConnectionPool) -> StatementExecutor:
    return StatementExecutor(pool)


@pytest.fixture
def users_table(executor: StatementExecutor) -> str:
    """A table whose id column is filled from a sequence."""
    executor.execute_one("CREATE SEQUENCE users_seq START 1", {})
    executor.execute_one(
        "CREATE TABLE users (id INTEGER DEFAULT nextval('users_seq'), name VARCHAR)",
        {},
    )
    return "users"
