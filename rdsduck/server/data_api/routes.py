"""Route definitions for the Data API.

AWS clients using the REST protocol call /Execute and /BatchExecute.
Clients using the JSON protocol POST to / and name the operation in
the X-Amz-Target header.
"""

from starlette.routing import Route

from . import handlers


def get_data_api_routes() -> list[Route]:
    """Get all Data API routes.

    Returns:
        List of Starlette Route objects, ending with the catch-all fallback
    """
    return [
        Route("/Execute", handlers.execute_statement, methods=["POST"]),
        Route("/BatchExecute", handlers.batch_execute_statement, methods=["POST"]),
        Route("/", handlers.dispatch_operation, methods=["POST"]),
        Route("/{path:path}", handlers.fallback_route),
    ]
