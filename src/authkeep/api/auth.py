"""Auth API — login, logoff, current context.

Learn: Routes for the cookie session lifecycle:
- POST /login → username/pwd → auth-token cookie
- POST /logoff → drop the auth-token cookie
- GET /me → the resolved Ctx (protected via get_ctx)

Every login failure raises a LoginFail subclass with the real reason and
user id for the request log; the client only ever sees 403 LOGIN_FAIL.
"""

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel

from authkeep.auth.dependencies import (
    get_cookies,
    get_ctx,
    get_password_hasher,
    get_token_signer,
    get_users,
)
from authkeep.auth.identity import IdentityStore, IdentityStoreError
from authkeep.auth.password import (
    PasswordHasher,
    PwdDispatchFail,
    PwdError,
    PwdValidateFail,
)
from authkeep.auth.schemes import ContentToHash, SchemeStatus
from authkeep.auth.token import TokenSigner
from authkeep.ctx import Ctx
from authkeep.web.cookies import CookieJar, remove_token_cookie, set_token_cookie
from authkeep.web.error import (
    HashDispatchFail,
    LoginFailPwdNotMatching,
    LoginFailUserHasNoPwd,
    LoginFailUsernameNotFound,
)

logger = structlog.get_logger()

router = APIRouter()


# ─── Schemas ─────────────────────────────────────────────


class LoginPayload(BaseModel):
    username: str
    pwd: str


class LogoffPayload(BaseModel):
    logoff: bool


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(
    body: LoginPayload,
    background_tasks: BackgroundTasks,
    users: IdentityStore = Depends(get_users),
    hasher: PasswordHasher = Depends(get_password_hasher),
    signer: TokenSigner = Depends(get_token_signer),
    cookies: CookieJar = Depends(get_cookies),
):
    """Validate username/pwd and set the auth-token cookie."""
    root_ctx = Ctx.root_ctx()

    user = await users.first_for_login(root_ctx, body.username)

    try:
        # Same hashing cost whether or not the account can be checked.
        if user is None or not user.pwd:
            await hasher.spend_validate_work(body.pwd)
            if user is None:
                raise LoginFailUsernameNotFound()
            raise LoginFailUserHasNoPwd(user.id)

        status = await hasher.validate_pwd(
            ContentToHash(content=body.pwd, salt=user.pwd_salt), user.pwd
        )
    except PwdValidateFail:
        raise LoginFailPwdNotMatching(user.id) from None
    except PwdDispatchFail as e:
        raise HashDispatchFail(str(e)) from e

    # The clear pwd is only available now, so outdated hashes are upgraded
    # here, after the response is sent.
    if status is SchemeStatus.OUTDATED:
        logger.info("login.pwd_outdated", user_id=user.id)
        background_tasks.add_task(upgrade_pwd, users, user.id, body.pwd)

    set_token_cookie(cookies, signer, user.username, str(user.token_salt))

    return {"result": {"success": True}}


async def upgrade_pwd(users: IdentityStore, user_id: int, pwd_clear: str) -> None:
    """Re-hash a password with the default scheme. Failure keeps the old hash."""
    try:
        await users.update_pwd(Ctx.root_ctx(), user_id, pwd_clear)
    except (IdentityStoreError, PwdError) as e:
        logger.warning("login.pwd_upgrade_failed", user_id=user_id, error=type(e).__name__)
        return
    logger.info("login.pwd_upgraded", user_id=user_id)


# ─── Logoff ──────────────────────────────────────────────


@router.post("/logoff")
async def logoff(body: LogoffPayload, cookies: CookieJar = Depends(get_cookies)):
    if body.logoff:
        remove_token_cookie(cookies)

    return {"result": {"logged_off": body.logoff}}


# ─── Current context ─────────────────────────────────────


@router.get("/me")
async def get_me(ctx: Ctx = Depends(get_ctx)):
    return {"result": {"user_id": ctx.user_id}}
