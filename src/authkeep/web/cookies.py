"""Request-scoped cookie jar and auth-token cookie helpers.

Learn: the ctx resolver middleware and the route handlers both need to
read, set and remove the auth cookie during one request. Instead of each
writing to its own Response, they share one CookieJar per request. Writes
are recorded in order (last write per name wins) and applied to the
outgoing response once, by the middleware.

Auth cookie policy: name `auth-token`, HttpOnly, Path=/, SameSite=Lax,
Secure when settings.cookie_secure is set.
"""

from typing import Mapping, Optional

from starlette.responses import Response

from authkeep.auth.token import TokenSigner

AUTH_TOKEN = "auth-token"
AUTH_COOKIE_PATH = "/"

_FORBIDDEN_COOKIE_CHARS = frozenset(' ",;\\\t\r\n')


class CookieError(ValueError):
    """Raised when a cookie value can't be written."""


class CookieJar:
    """get/set/remove named credentials for the current request."""

    def __init__(self, incoming: Mapping[str, str], *, secure: bool = False):
        self._incoming = dict(incoming)
        self._pending: dict[str, Optional[str]] = {}
        self.secure = secure

    def get(self, name: str) -> Optional[str]:
        if name in self._pending:
            return self._pending[name]
        return self._incoming.get(name)

    def set(self, name: str, value: str) -> None:
        if not value or any(c in _FORBIDDEN_COOKIE_CHARS for c in value):
            raise CookieError(f"invalid value for cookie {name!r}")
        if not value.isascii():
            raise CookieError(f"invalid value for cookie {name!r}")
        self._pending[name] = value

    def remove(self, name: str) -> None:
        self._pending[name] = None

    @property
    def pending(self) -> dict[str, Optional[str]]:
        return dict(self._pending)

    def apply(self, response: Response) -> None:
        """Write pending changes as Set-Cookie headers."""
        for name, value in self._pending.items():
            if value is None:
                response.delete_cookie(
                    key=name,
                    path=AUTH_COOKIE_PATH,
                    secure=self.secure,
                    httponly=True,
                    samesite="lax",
                )
            else:
                response.set_cookie(
                    key=name,
                    value=value,
                    path=AUTH_COOKIE_PATH,
                    secure=self.secure,
                    httponly=True,
                    samesite="lax",
                )


def set_token_cookie(
    cookies: CookieJar, signer: TokenSigner, username: str, token_salt: str
) -> None:
    """Issue a fresh token for the user and store it in the jar."""
    token = signer.generate_web_token(username, token_salt)
    cookies.set(AUTH_TOKEN, str(token))


def remove_token_cookie(cookies: CookieJar) -> None:
    cookies.remove(AUTH_TOKEN)
