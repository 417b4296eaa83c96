"""SQLAlchemy ORM models — the identity store schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
A user row carries two independent salts:
- pwd_salt feeds the password schemes (rotating it invalidates the stored pwd)
- token_salt is folded into every token signature (rotating it logs the
  user out everywhere)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """A user with a password credential and token salt.

    Learn: pwd is `#<scheme_id>#<blob>` (see authkeep.auth.password). It is
    nullable: an account can exist before a password is set, and login
    then fails with LoginFailUserHasNoPwd.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    pwd: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    pwd_salt: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True), nullable=False, default=uuid.uuid4
    )
    token_salt: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True), nullable=False, default=uuid.uuid4
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
