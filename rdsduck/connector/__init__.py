from .connector import Connector, parse_database_url
from .cursor import Cursor, StatementKind, StatementOutcome, classify_statement
from .pool import ConnectionPool

__all__ = [
    "ConnectionPool",
    "Connector",
    "Cursor",
    "StatementKind",
    "StatementOutcome",
    "classify_statement",
    "parse_database_url",
]
