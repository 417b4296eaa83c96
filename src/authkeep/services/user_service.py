"""User service — the SQLAlchemy-backed identity store.

Learn: Service layer separates data access from HTTP routing. Routes and
the ctx resolver only see the IdentityStore interface (narrow read-only
records), so they can be tested with an in-memory store.

Each call opens its own short-lived session: the resolver runs in
middleware, before any route dependency could hand out a per-request
session. Driver/DB failures surface as IdentityStoreError.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authkeep.auth.identity import IdentityStoreError, UserForAuth, UserForLogin
from authkeep.auth.password import PasswordHasher
from authkeep.auth.schemes import ContentToHash
from authkeep.ctx import Ctx
from authkeep.db.models import User

logger = structlog.get_logger()


class UserService:
    """Identity lookups and password writes."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: PasswordHasher,
    ):
        self.session_factory = session_factory
        self.hasher = hasher

    # ─── Reads ──────────────────────────────────────────

    async def first_for_auth(self, ctx: Ctx, username: str) -> Optional[UserForAuth]:
        user = await self._first_by_username(username)
        if user is None:
            return None
        return UserForAuth(id=user.id, username=user.username, token_salt=user.token_salt)

    async def first_for_login(self, ctx: Ctx, username: str) -> Optional[UserForLogin]:
        user = await self._first_by_username(username)
        if user is None:
            return None
        return UserForLogin(
            id=user.id,
            username=user.username,
            pwd=user.pwd,
            pwd_salt=user.pwd_salt,
            token_salt=user.token_salt,
        )

    async def _first_by_username(self, username: str) -> Optional[User]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(User).where(User.username == username)
                )
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"user lookup failed: {e}") from e

    # ─── Writes ─────────────────────────────────────────

    async def create(self, ctx: Ctx, username: str, pwd_clear: Optional[str] = None) -> int:
        """Create a user with fresh salts; hash pwd_clear with the default scheme."""
        pwd_salt = uuid.uuid4()
        pwd = None
        if pwd_clear is not None:
            pwd = await self.hasher.hash_pwd(ContentToHash(content=pwd_clear, salt=pwd_salt))

        user = User(
            username=username,
            pwd=pwd,
            pwd_salt=pwd_salt,
            token_salt=uuid.uuid4(),
        )
        try:
            async with self.session_factory() as session:
                session.add(user)
                await session.commit()
                user_id = user.id
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"user create failed: {e}") from e

        logger.info("user.created", user_id=user_id, by_user_id=ctx.user_id)
        return user_id

    async def update_pwd(self, ctx: Ctx, user_id: int, pwd_clear: str) -> None:
        """Re-hash pwd_clear with the default scheme and store it.

        Learn: the hash is computed against the row's current pwd_salt,
        outside the session, so a slow hash doesn't hold a DB connection.
        """
        try:
            async with self.session_factory() as session:
                pwd_salt = await session.scalar(
                    select(User.pwd_salt).where(User.id == user_id)
                )
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"user lookup failed: {e}") from e
        if pwd_salt is None:
            raise IdentityStoreError(f"user {user_id} not found")

        pwd = await self.hasher.hash_pwd(ContentToHash(content=pwd_clear, salt=pwd_salt))

        try:
            async with self.session_factory() as session:
                await session.execute(
                    update(User).where(User.id == user_id).values(pwd=pwd)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"pwd update failed: {e}") from e

        logger.info("user.pwd_updated", user_id=user_id, by_user_id=ctx.user_id)
