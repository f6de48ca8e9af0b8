"""RDS Data API package.

Implements the statement operations of the AWS RDS Data API:
https://docs.aws.amazon.com/rdsdataservice/latest/APIReference/Welcome.html

Endpoints:
    POST /Execute - ExecuteStatement
    POST /BatchExecute - BatchExecuteStatement
    POST / - either operation, selected by the X-Amz-Target header

Modules:
    handlers: HTTP request handlers
    models: Request parsing and validation
    routes: Route definitions
"""

from .models import MAX_SQL_LENGTH, BatchExecuteRequest, ExecuteRequest
from .routes import get_data_api_routes

__all__ = [
    "BatchExecuteRequest",
    "ExecuteRequest",
    "MAX_SQL_LENGTH",
    "get_data_api_routes",
]
