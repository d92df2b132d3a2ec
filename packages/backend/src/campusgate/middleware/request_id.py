"""Request ID middleware — correlates log lines for one HTTP request.

The ID comes from the incoming X-Request-ID header or is generated, is bound
to structlog's contextvars together with the request path, and is echoed
back in the response header.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log entry of an HTTP request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, path=request.url.path
        )

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
