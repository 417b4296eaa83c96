"""Request log middleware — one structured log line per request.

Learn: Every request gets a uuid, either from the incoming X-Request-ID
header (for distributed tracing) or auto-generated. The id is bound to
structlog's contextvars so it appears in all log entries for that
request, returned in the X-Request-ID response header, and included as
req_uuid in client error bodies.

After the response is produced, a single `request.log_line` event records
who made the request and, on failure, both the client-facing error and
the full server-side error type/data. The server-side detail only ever
goes here.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Assign a request uuid and emit the request log line."""

    async def dispatch(self, request: Request, call_next) -> Response:
        req_uuid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.req_uuid = req_uuid

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(req_uuid=req_uuid)

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = req_uuid

        log_request(request)
        return response


def log_request(request: Request) -> None:
    resolution = getattr(request.state, "ctx_resolution", None)
    service_error = getattr(request.state, "service_error", None)
    client_error = getattr(request.state, "client_error", None)

    line = {
        "req_uuid": getattr(request.state, "req_uuid", None),
        "timestamp": int(time.time() * 1000),
        "user_id": resolution.ctx.user_id if resolution and resolution.ctx else None,
        "http_path": request.url.path,
        "http_method": request.method,
        "client_error_type": client_error.value if client_error else None,
        "error_type": service_error.error_type if service_error else None,
        "error_data": service_error.error_data if service_error else None,
    }
    logger.info(
        "request.log_line", **{k: v for k, v in line.items() if v is not None}
    )
