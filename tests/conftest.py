"""Test fixtures: app wired to an in-memory identity store.

Learn: Testing pattern for the auth service:

1. Fixed test secrets go into the environment BEFORE authkeep is imported,
   so Settings() (and the CLI) load them like they would in production.
2. The app is built with create_app(settings, users=store), so no
   database is touched. The store implements the same interface as
   UserService and hashes with the real PasswordHasher.
3. httpx AsyncClient over ASGITransport talks to the app in-process.
"""

import os
import uuid

# 64-byte keys, url-safe base64 without padding (authkeep gen-key)
TEST_PWD_KEY = "Jn62oIBIkGhyI0ax4hJAgTDrPFhZ8iAMYWk_60RcUME8SLflq-zGCmBMrJwjq_-xNl3wzBptbf8EbJAYH8yLhw"
TEST_TOKEN_KEY = "syodCWbX1FoG6xTodQIjydezQpaLYbCnRICqzHJxSO6EWj-T_GKQwHPjqOifO72OBm-ppbvtdN3c_VPP5dzbwA"

os.environ.setdefault("AUTHKEEP_PWD_KEY", TEST_PWD_KEY)
os.environ.setdefault("AUTHKEEP_TOKEN_KEY", TEST_TOKEN_KEY)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from authkeep.auth.identity import IdentityStoreError, UserForAuth, UserForLogin  # noqa: E402
from authkeep.auth.password import PasswordHasher  # noqa: E402
from authkeep.auth.schemes import ContentToHash, Scheme  # noqa: E402
from authkeep.auth.token import TokenSigner  # noqa: E402
from authkeep.auth.workers import HashWorkerPool  # noqa: E402
from authkeep.config import Settings  # noqa: E402
from authkeep.main import create_app  # noqa: E402


class InMemoryUserStore:
    """IdentityStore backed by a dict, for tests."""

    def __init__(self, hasher: PasswordHasher):
        self.hasher = hasher
        self.users: dict[str, UserForLogin] = {}
        self.broken = False  # simulate an unavailable store
        self._next_id = 1000

    async def add(
        self,
        username: str,
        pwd_clear: str | None = None,
        scheme: Scheme | None = None,
    ) -> UserForLogin:
        pwd_salt = uuid.uuid4()
        pwd = None
        if pwd_clear is not None:
            to_hash = ContentToHash(content=pwd_clear, salt=pwd_salt)
            pwd = await self.hasher.hash_pwd_with(scheme or self.hasher.default_scheme, to_hash)

        self._next_id += 1
        user = UserForLogin(
            id=self._next_id,
            username=username,
            pwd=pwd,
            pwd_salt=pwd_salt,
            token_salt=uuid.uuid4(),
        )
        self.users[username] = user
        return user

    async def first_for_auth(self, ctx, username):
        user = self._lookup(username)
        if user is None:
            return None
        return UserForAuth(id=user.id, username=user.username, token_salt=user.token_salt)

    async def first_for_login(self, ctx, username):
        return self._lookup(username)

    async def update_pwd(self, ctx, user_id, pwd_clear):
        user = next(u for u in self.users.values() if u.id == user_id)
        pwd = await self.hasher.hash_pwd(ContentToHash(content=pwd_clear, salt=user.pwd_salt))
        self.users[user.username] = UserForLogin(
            id=user.id,
            username=user.username,
            pwd=pwd,
            pwd_salt=user.pwd_salt,
            token_salt=user.token_salt,
        )

    def _lookup(self, username):
        if self.broken:
            raise IdentityStoreError("store unavailable")
        return self.users.get(username)


# ─── Core objects ────────────────────────────────────────


@pytest.fixture()
def settings():
    return Settings(hash_max_workers=2, hash_max_pending=8)


@pytest.fixture()
def hash_pool():
    pool = HashWorkerPool(max_workers=2, max_pending=8, timeout=10.0)
    yield pool
    pool.shutdown()


@pytest.fixture()
def hasher(settings, hash_pool):
    return PasswordHasher(settings.pwd_key_bytes, hash_pool)


@pytest.fixture()
def signer(settings):
    return TokenSigner(settings.token_key_bytes, settings.token_duration_sec)


@pytest.fixture()
def user_store(hasher):
    return InMemoryUserStore(hasher)


@pytest_asyncio.fixture()
async def demo_user(user_store):
    """demo1 / welcome, hashed with the default scheme."""
    return await user_store.add("demo1", "welcome")


# ─── HTTP ────────────────────────────────────────────────


@pytest.fixture()
def app(settings, user_store):
    application = create_app(settings, users=user_store)
    yield application
    application.state.hash_pool.shutdown()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client with an empty cookie jar."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _set_cookie_header(response, name: str) -> str | None:
    """The Set-Cookie header for `name`, if the response has one."""
    for header in response.headers.get_list("set-cookie"):
        if header.split("=", 1)[0] == name:
            return header
    return None


def _set_cookie_value(response, name: str) -> str | None:
    header = _set_cookie_header(response, name)
    if header is None:
        return None
    return header.split("=", 1)[1].split(";", 1)[0]


@pytest.fixture()
def cookie_header():
    return _set_cookie_header


@pytest.fixture()
def cookie_value():
    return _set_cookie_value
