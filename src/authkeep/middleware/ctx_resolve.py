"""Ctx resolve middleware: runs auth context resolution on every request.

Learn: this middleware never rejects a request. It resolves the auth
cookie into a CtxResolution, stores it on request.state, and always calls
the next handler. Rejection (if the route needs auth) happens later in
the get_ctx dependency.

It also owns the request's CookieJar: handlers get the same jar through
the get_cookies dependency, and the jar's pending writes are applied to
the response here on the way out.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from authkeep.web.cookies import CookieJar


class CtxResolveMiddleware(BaseHTTPMiddleware):
    """Resolve the auth cookie into request.state.ctx_resolution."""

    def __init__(self, app, cookie_secure: bool = False):
        super().__init__(app)
        self.cookie_secure = cookie_secure

    async def dispatch(self, request: Request, call_next) -> Response:
        cookies = CookieJar(request.cookies, secure=self.cookie_secure)
        request.state.cookies = cookies

        resolver = request.app.state.ctx_resolver
        request.state.ctx_resolution = await resolver.resolve(cookies)

        response: Response = await call_next(request)
        cookies.apply(response)
        return response
