"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Everything the auth code needs (hash pool, hasher, token
signer, identity store, ctx resolver) is built once here from Settings
and hung on app.state; dependencies read it from there.

Lifespan manages startup/shutdown (dev seed, hash pool, database engine).
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from authkeep import __version__
from authkeep.api import api_router
from authkeep.auth.identity import IdentityStore
from authkeep.auth.password import PasswordHasher
from authkeep.auth.resolver import CtxResolver
from authkeep.auth.token import TokenSigner
from authkeep.auth.workers import HashWorkerPool
from authkeep.config import Settings
from authkeep.db.engine import build_engine, build_session_factory
from authkeep.middleware.ctx_resolve import CtxResolveMiddleware
from authkeep.middleware.request_log import RequestLogMiddleware
from authkeep.services.user_service import UserService
from authkeep.web.error import WebError, unhandled_error_handler, web_error_handler

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "authkeep.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        hash_max_workers=settings.hash_max_workers,
    )

    engine = app.state.engine
    if settings.dev_seed and settings.environment == "development" and engine is not None:
        from authkeep.db.dev import init_dev_db
        await init_dev_db(engine, app.state.users)

    yield

    logger.info("authkeep.shutdown")

    # Queued hashing units are cancelled; running ones finish on their thread.
    app.state.hash_pool.shutdown(wait=False)

    if engine is not None:
        await engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    users: Optional[IdentityStore] = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Learn: `users` lets tests plug in any IdentityStore. Without it the
    SQLAlchemy UserService is used and the engine is owned by the app.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="authkeep",
        description="Password and session-token authentication service",
        version=__version__,
        lifespan=lifespan,
    )

    pool = HashWorkerPool(
        max_workers=settings.hash_max_workers,
        max_pending=settings.hash_max_pending,
        timeout=settings.hash_timeout_seconds,
    )
    hasher = PasswordHasher(settings.pwd_key_bytes, pool)
    signer = TokenSigner(settings.token_key_bytes, settings.token_duration_sec)

    engine = None
    if users is None:
        engine = build_engine(settings.database_url, debug=settings.debug)
        users = UserService(build_session_factory(engine), hasher)

    app.state.settings = settings
    app.state.engine = engine
    app.state.hash_pool = pool
    app.state.password_hasher = hasher
    app.state.token_signer = signer
    app.state.users = users
    app.state.ctx_resolver = CtxResolver(users, signer)

    app.add_exception_handler(WebError, web_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestLog → CtxResolve → handler
    app.add_middleware(CtxResolveMiddleware, cookie_secure=settings.cookie_secure)
    app.add_middleware(RequestLogMiddleware)

    app.include_router(api_router)

    return app


def get_app() -> FastAPI:
    """uvicorn factory entry point: `uvicorn authkeep.main:get_app --factory`."""
    return create_app()
