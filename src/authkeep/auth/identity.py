"""Identity records and the lookup interface the auth code depends on.

The identity store owns these records; the auth code only reads them.
Anything that implements IdentityStore can back the resolver, e.g. the
SQLAlchemy UserService or an in-memory store in tests.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

from authkeep.ctx import Ctx


class IdentityStoreError(Exception):
    """The identity store could not answer (unavailable, query failed)."""


@dataclass(frozen=True)
class UserForAuth:
    id: int
    username: str
    token_salt: uuid.UUID


@dataclass(frozen=True)
class UserForLogin:
    id: int
    username: str
    pwd: Optional[str] = field(repr=False)  # `#<scheme_id>#...`
    pwd_salt: uuid.UUID = field(repr=False)
    token_salt: uuid.UUID = field(repr=False)


class IdentityStore(Protocol):
    async def first_for_auth(self, ctx: Ctx, username: str) -> Optional[UserForAuth]: ...

    async def first_for_login(self, ctx: Ctx, username: str) -> Optional[UserForLogin]: ...

    async def update_pwd(self, ctx: Ctx, user_id: int, pwd_clear: str) -> None: ...
