"""HTTP response helpers shared by routes and middleware."""

from http import HTTPStatus

from starlette.responses import JSONResponse


def error_response(status: HTTPStatus) -> JSONResponse:
    """Build an error response that carries only the status phrase."""
    return JSONResponse({"error": status.phrase}, status_code=status)
