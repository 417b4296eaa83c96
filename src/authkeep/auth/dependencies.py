"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. They don't do any
crypto themselves; CtxResolveMiddleware already resolved the cookie and
left a CtxResolution on request.state. These only read it.

Two gates:
1. get_ctx_optional → Ctx or None, for routes that work either way
2. get_ctx → Ctx or 401 NO_AUTH, for protected routes

The internal failure reason (expired, forged, unknown user...) is
logged on the server, never returned to the client.
"""

from typing import Optional

from fastapi import Depends, Request

from authkeep.auth.password import PasswordHasher
from authkeep.auth.resolver import CtxExtError, CtxResolution
from authkeep.auth.token import TokenSigner
from authkeep.ctx import Ctx
from authkeep.web.cookies import CookieJar
from authkeep.web.error import CtxExtFail


def _resolution(request: Request) -> Optional[CtxResolution]:
    return getattr(request.state, "ctx_resolution", None)


def get_ctx_optional(request: Request) -> Optional[Ctx]:
    """Current Ctx, or None for anonymous / failed resolution."""
    resolution = _resolution(request)
    if resolution is None:
        return None
    return resolution.ctx


def get_ctx(
    request: Request,
    ctx: Optional[Ctx] = Depends(get_ctx_optional),
) -> Ctx:
    """Current Ctx, or CtxExtFail (401 NO_AUTH)."""
    if ctx is not None:
        return ctx

    resolution = _resolution(request)
    if resolution is None:
        raise CtxExtFail(CtxExtError.CTX_NOT_IN_REQUEST_EXT)
    raise CtxExtFail(resolution.error or CtxExtError.CTX_NOT_IN_REQUEST_EXT)


def get_cookies(request: Request) -> CookieJar:
    """The request's shared cookie jar (created by CtxResolveMiddleware)."""
    return request.state.cookies


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_signer(request: Request) -> TokenSigner:
    return request.app.state.token_signer


def get_users(request: Request):
    return request.app.state.users
