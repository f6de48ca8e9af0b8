"""Shared configuration for the rdsduck server.

Settings are read from the environment once, at import time:
- RDSDUCK_DATABASE_URL: DuckDB database (":memory:" by default)
- RDSDUCK_POOL_SIZE: maximum number of pooled connections
- RDSDUCK_POOL_TIMEOUT: seconds to wait for a free connection
- RDSDUCK_HOST / RDSDUCK_PORT: listen address of the CLI server
"""

from __future__ import annotations

import os

DATABASE_URL = os.getenv("RDSDUCK_DATABASE_URL", ":memory:")
POOL_SIZE = int(os.getenv("RDSDUCK_POOL_SIZE", "10"))
POOL_TIMEOUT = float(os.getenv("RDSDUCK_POOL_TIMEOUT", "30"))
HOST = os.getenv("RDSDUCK_HOST", "127.0.0.1")
PORT = int(os.getenv("RDSDUCK_PORT", "3000"))
