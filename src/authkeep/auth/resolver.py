"""Per-request auth context resolution.

Learn: resolution walks a fixed sequence of states and stops at the first
failure:

    NO_TOKEN → TOKEN_FOUND → TOKEN_PARSED → USER_RESOLVED
             → SIGNATURE_VALIDATED → CONTEXT_READY

The outcome is a CtxResolution value, never an exception. The middleware
stores it on the request and lets the request continue; whether a route
actually *needs* a Ctx is decided later by the get_ctx dependency. That
is how an anonymous visitor still reaches open routes like /api/health.

On any failure except TOKEN_NOT_IN_COOKIE the stale cookie is removed,
so a broken or forged token isn't replayed on every following request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import structlog

from authkeep.auth.identity import IdentityStore
from authkeep.auth.token import Token, TokenError, TokenSigner
from authkeep.ctx import Ctx, CtxCreateError
from authkeep.web.cookies import AUTH_TOKEN, set_token_cookie

logger = structlog.get_logger()


class CredentialStore(Protocol):
    def get(self, name: str) -> Optional[str]: ...

    def set(self, name: str, value: str) -> None: ...

    def remove(self, name: str) -> None: ...


class ResolveState(Enum):
    NO_TOKEN = "NoToken"
    TOKEN_FOUND = "TokenFound"
    TOKEN_PARSED = "TokenParsed"
    USER_RESOLVED = "UserResolved"
    SIGNATURE_VALIDATED = "SignatureValidated"
    CONTEXT_READY = "ContextReady"


class CtxExtError(Enum):
    TOKEN_NOT_IN_COOKIE = "TokenNotInCookie"
    TOKEN_WRONG_FORMAT = "TokenWrongFormat"
    USER_NOT_FOUND = "UserNotFound"
    MODEL_ACCESS_ERROR = "ModelAccessError"
    FAIL_VALIDATE = "FailValidate"
    CANNOT_SET_TOKEN_COOKIE = "CannotSetTokenCookie"
    CTX_NOT_IN_REQUEST_EXT = "CtxNotInRequestExt"
    CTX_CREATE_FAIL = "CtxCreateFail"


@dataclass(frozen=True)
class CtxResolution:
    """Outcome of one resolution cycle: a Ctx, or the failure reason."""

    state: ResolveState
    ctx: Optional[Ctx] = None
    error: Optional[CtxExtError] = None
    detail: Optional[str] = None  # internal diagnostics only

    @property
    def ok(self) -> bool:
        return self.ctx is not None

    @classmethod
    def failed(
        cls, state: ResolveState, error: CtxExtError, detail: Optional[str] = None
    ) -> "CtxResolution":
        return cls(state=state, error=error, detail=detail)


class CtxResolver:
    """Turns the auth cookie into a Ctx or a classified failure."""

    def __init__(self, users: IdentityStore, signer: TokenSigner):
        self.users = users
        self.signer = signer

    async def resolve(self, cookies: CredentialStore) -> CtxResolution:
        resolution = await self._resolve(cookies)

        if resolution.error is not None:
            if resolution.error is not CtxExtError.TOKEN_NOT_IN_COOKIE:
                cookies.remove(AUTH_TOKEN)
                logger.info(
                    "ctx_resolve.failed",
                    reason=resolution.error.value,
                    state=resolution.state.value,
                )
        return resolution

    async def _resolve(self, cookies: CredentialStore) -> CtxResolution:
        state = ResolveState.NO_TOKEN
        token_str = cookies.get(AUTH_TOKEN)
        if not token_str:
            return CtxResolution.failed(state, CtxExtError.TOKEN_NOT_IN_COOKIE)

        state = ResolveState.TOKEN_FOUND
        try:
            token = Token.parse(token_str)
        except TokenError as e:
            return CtxResolution.failed(
                state, CtxExtError.TOKEN_WRONG_FORMAT, type(e).__name__
            )

        state = ResolveState.TOKEN_PARSED
        try:
            user = await self.users.first_for_auth(Ctx.root_ctx(), token.ident)
        except Exception as e:
            # Whatever the store raises (driver, pool, IdentityStoreError) is
            # a lookup failure, not a reason to fail the request.
            return CtxResolution.failed(state, CtxExtError.MODEL_ACCESS_ERROR, str(e))
        if user is None:
            return CtxResolution.failed(state, CtxExtError.USER_NOT_FOUND)

        state = ResolveState.USER_RESOLVED
        try:
            self.signer.validate_web_token(token, str(user.token_salt))
        except TokenError as e:
            return CtxResolution.failed(
                state, CtxExtError.FAIL_VALIDATE, type(e).__name__
            )

        state = ResolveState.SIGNATURE_VALIDATED
        try:
            set_token_cookie(cookies, self.signer, user.username, str(user.token_salt))
        except (TokenError, ValueError) as e:
            return CtxResolution.failed(
                state, CtxExtError.CANNOT_SET_TOKEN_COOKIE, type(e).__name__
            )

        try:
            ctx = Ctx.new(user.id)
        except CtxCreateError as e:
            return CtxResolution.failed(state, CtxExtError.CTX_CREATE_FAIL, str(e))

        return CtxResolution(state=ResolveState.CONTEXT_READY, ctx=ctx)
