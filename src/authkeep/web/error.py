"""Server-side web errors and their client-facing classification.

Learn: handlers raise WebError subclasses carrying full server-side
detail (which user, which failure). The exception handler never puts that
detail in the response. It asks the error for a (status, ClientError)
pair and returns only the coarse ClientError plus the request uuid. The
detail is kept on request.state for the request log line.

Default path is the safe path: an error that doesn't override
client_status_and_error() is reported as SERVICE_ERROR.
"""

from enum import Enum
from typing import Any, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from authkeep.auth.resolver import CtxExtError

logger = structlog.get_logger()


class ClientError(Enum):
    LOGIN_FAIL = "LOGIN_FAIL"
    NO_AUTH = "NO_AUTH"
    SERVICE_BUSY = "SERVICE_BUSY"
    SERVICE_ERROR = "SERVICE_ERROR"


class WebError(Exception):
    """Root of server-side web errors."""

    def client_status_and_error(self) -> tuple[int, ClientError]:
        return 500, ClientError.SERVICE_ERROR

    @property
    def error_type(self) -> str:
        return type(self).__name__

    @property
    def error_data(self) -> Optional[dict[str, Any]]:
        return None


# ─── Login ───────────────────────────────────────────────


class LoginFail(WebError):
    def client_status_and_error(self) -> tuple[int, ClientError]:
        return 403, ClientError.LOGIN_FAIL


class LoginFailUsernameNotFound(LoginFail):
    pass


class LoginFailUserHasNoPwd(LoginFail):
    def __init__(self, user_id: int):
        super().__init__(f"user {user_id} has no password")
        self.user_id = user_id

    @property
    def error_data(self) -> Optional[dict[str, Any]]:
        return {"user_id": self.user_id}


class LoginFailPwdNotMatching(LoginFail):
    def __init__(self, user_id: int):
        super().__init__(f"password not matching for user {user_id}")
        self.user_id = user_id

    @property
    def error_data(self) -> Optional[dict[str, Any]]:
        return {"user_id": self.user_id}


# ─── Auth context ────────────────────────────────────────


class CtxExtFail(WebError):
    def __init__(self, reason: CtxExtError):
        super().__init__(reason.value)
        self.reason = reason

    def client_status_and_error(self) -> tuple[int, ClientError]:
        return 401, ClientError.NO_AUTH

    @property
    def error_data(self) -> Optional[dict[str, Any]]:
        return {"reason": self.reason.value}


# ─── Hashing capacity ────────────────────────────────────


class HashDispatchFail(WebError):
    def client_status_and_error(self) -> tuple[int, ClientError]:
        return 503, ClientError.SERVICE_BUSY


class UnhandledError(WebError):
    """Wraps an exception no handler classified."""


async def web_error_handler(request: Request, exc: WebError) -> JSONResponse:
    """FastAPI exception handler for WebError."""
    status_code, client_error = exc.client_status_and_error()
    request.state.service_error = exc
    request.state.client_error = client_error

    body = {
        "error": {
            "message": client_error.value,
            "data": {"req_uuid": getattr(request.state, "req_uuid", None)},
        }
    }
    return JSONResponse(status_code=status_code, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: anything that isn't a WebError is SERVICE_ERROR."""
    logger.error("request.unhandled_error", error_type=type(exc).__name__, exc_info=exc)
    return await web_error_handler(request, UnhandledError(type(exc).__name__))
