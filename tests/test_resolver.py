"""Ctx resolver tests: the resolution state machine without HTTP.

Learn: the resolver only needs something with get/set/remove for
cookies, so a dict-backed store stands in for the request's CookieJar.
"""

from typing import Optional

import pytest

from authkeep.auth.resolver import CtxExtError, CtxResolver, ResolveState
from authkeep.auth.token import Token, generate_token
from authkeep.web.cookies import AUTH_TOKEN


class DictCookies:
    def __init__(self, **initial: str):
        self.values: dict[str, str] = dict(initial)
        self.removed: list[str] = []

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def set(self, name: str, value: str) -> None:
        self.values[name] = value

    def remove(self, name: str) -> None:
        self.values.pop(name, None)
        self.removed.append(name)


@pytest.fixture()
def resolver(user_store, signer):
    return CtxResolver(user_store, signer)


def _web_token(signer, user) -> str:
    return str(signer.generate_web_token(user.username, str(user.token_salt)))


@pytest.mark.asyncio
async def test_valid_token_resolves_ctx(resolver, signer, demo_user):
    old_token = _web_token(signer, demo_user)
    cookies = DictCookies(**{AUTH_TOKEN: old_token})

    res = await resolver.resolve(cookies)

    assert res.ok
    assert res.state is ResolveState.CONTEXT_READY
    assert res.ctx.user_id == demo_user.id
    assert res.error is None
    # A fresh, valid token replaces the old one.
    new_token = Token.parse(cookies.get(AUTH_TOKEN))
    signer.validate_web_token(new_token, str(demo_user.token_salt))
    assert cookies.removed == []


@pytest.mark.asyncio
async def test_no_cookie_is_not_an_error_to_clean_up(resolver):
    cookies = DictCookies()
    res = await resolver.resolve(cookies)

    assert not res.ok
    assert res.state is ResolveState.NO_TOKEN
    assert res.error is CtxExtError.TOKEN_NOT_IN_COOKIE
    assert cookies.removed == []


@pytest.mark.asyncio
async def test_wrong_format_removes_cookie(resolver):
    cookies = DictCookies(**{AUTH_TOKEN: "garbage"})
    res = await resolver.resolve(cookies)

    assert res.state is ResolveState.TOKEN_FOUND
    assert res.error is CtxExtError.TOKEN_WRONG_FORMAT
    assert cookies.removed == [AUTH_TOKEN]
    assert cookies.get(AUTH_TOKEN) is None


@pytest.mark.asyncio
async def test_unknown_user(resolver, signer):
    token = signer.generate_web_token("ghost", "any-salt")
    cookies = DictCookies(**{AUTH_TOKEN: str(token)})
    res = await resolver.resolve(cookies)

    assert res.state is ResolveState.TOKEN_PARSED
    assert res.error is CtxExtError.USER_NOT_FOUND
    assert cookies.removed == [AUTH_TOKEN]


@pytest.mark.asyncio
async def test_store_failure_is_model_access_error(resolver, signer, user_store, demo_user):
    cookies = DictCookies(**{AUTH_TOKEN: _web_token(signer, demo_user)})
    user_store.broken = True

    res = await resolver.resolve(cookies)

    assert res.error is CtxExtError.MODEL_ACCESS_ERROR
    assert cookies.removed == [AUTH_TOKEN]


@pytest.mark.asyncio
async def test_wrong_token_salt_fails_validate(resolver, signer, demo_user):
    token = signer.generate_web_token(demo_user.username, "rotated-salt")
    cookies = DictCookies(**{AUTH_TOKEN: str(token)})
    res = await resolver.resolve(cookies)

    assert res.state is ResolveState.USER_RESOLVED
    assert res.error is CtxExtError.FAIL_VALIDATE
    assert res.detail == "TokenSignatureNotMatching"
    assert cookies.removed == [AUTH_TOKEN]


@pytest.mark.asyncio
async def test_expired_token_fails_validate(resolver, settings, demo_user):
    token = generate_token(
        demo_user.username, -1, str(demo_user.token_salt), settings.token_key_bytes
    )
    cookies = DictCookies(**{AUTH_TOKEN: str(token)})
    res = await resolver.resolve(cookies)

    assert res.error is CtxExtError.FAIL_VALIDATE
    assert res.detail == "TokenExpired"
    assert cookies.removed == [AUTH_TOKEN]


@pytest.mark.asyncio
async def test_root_user_id_cannot_become_ctx(resolver, signer, user_store):
    """A record with user id 0 must never produce a request Ctx."""
    user = await user_store.add("root-like", "pwd")
    user_store.users["root-like"] = type(user)(
        id=0,
        username=user.username,
        pwd=user.pwd,
        pwd_salt=user.pwd_salt,
        token_salt=user.token_salt,
    )
    cookies = DictCookies(**{AUTH_TOKEN: _web_token(signer, user)})

    res = await resolver.resolve(cookies)

    assert res.error is CtxExtError.CTX_CREATE_FAIL
    assert res.ctx is None


class UnwritableCookies(DictCookies):
    def set(self, name: str, value: str) -> None:
        raise ValueError("cookie store is read-only")


@pytest.mark.asyncio
async def test_cookie_write_failure(resolver, signer, demo_user):
    """An authentic token whose refresh cannot be written yields no Ctx."""
    cookies = UnwritableCookies(**{AUTH_TOKEN: _web_token(signer, demo_user)})

    res = await resolver.resolve(cookies)

    assert res.state is ResolveState.SIGNATURE_VALIDATED
    assert res.error is CtxExtError.CANNOT_SET_TOKEN_COOKIE
    assert res.detail == "ValueError"
    assert res.ctx is None
    assert cookies.removed == [AUTH_TOKEN]
