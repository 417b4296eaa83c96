"""authkeep CLI — key generation, offline hashing, config checks, dev server.

Usage:
    authkeep gen-key                                  # Random 64-byte key, url-safe base64
    authkeep hash-pwd welcome --salt <uuid>           # Stored-hash text (default scheme)
    authkeep hash-pwd welcome --salt <uuid> -s 01     # ... with a specific scheme
    authkeep check-config                             # Validate AUTHKEEP_* env vars
    authkeep serve                                    # Run the API with uvicorn
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import secrets
import sys
import uuid

import click
from pydantic import ValidationError

from authkeep import __version__
from authkeep.auth.encoding import b64u_encode
from authkeep.auth.password import PasswordHasher, PwdError
from authkeep.auth.schemes import ContentToHash, Scheme
from authkeep.auth.workers import HashWorkerPool
from authkeep.config import SECRET_KEY_LENGTH, Settings, decode_secret_key

PWD_KEY_ENV = "AUTHKEEP_PWD_KEY"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _pwd_key_from_env() -> bytes:
    value = os.environ.get(PWD_KEY_ENV)
    if not value:
        _fail(f"{PWD_KEY_ENV} is not set")
    try:
        return decode_secret_key(value)
    except ValueError as e:
        _fail(f"{PWD_KEY_ENV}: {e}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="authkeep")
def main():
    """authkeep — password and session-token authentication service."""


@main.command("gen-key")
def gen_key():
    """Print a random 64-byte key, url-safe base64 without padding."""
    click.echo(b64u_encode(secrets.token_bytes(SECRET_KEY_LENGTH)))


@main.command("hash-pwd")
@click.argument("password")
@click.option("--salt", required=True, type=click.UUID, help="Password salt (UUID)")
@click.option(
    "--scheme",
    "-s",
    "scheme_id",
    type=click.Choice([s.scheme_id for s in Scheme]),
    default=None,
    help="Scheme id (default: current default scheme)",
)
def hash_pwd(password: str, salt: uuid.UUID, scheme_id: str | None):
    """Print the stored-hash text for PASSWORD (reads AUTHKEEP_PWD_KEY)."""
    pwd_key = _pwd_key_from_env()
    to_hash = ContentToHash(content=password, salt=salt)
    try:
        pwd_ref = _run(_hash_pwd_impl(pwd_key, to_hash, scheme_id))
    except PwdError as e:
        _fail(f"hashing failed ({type(e).__name__})")
    click.echo(pwd_ref)


async def _hash_pwd_impl(pwd_key: bytes, to_hash: ContentToHash, scheme_id: str | None) -> str:
    pool = HashWorkerPool(max_workers=1, max_pending=1, timeout=60.0)
    try:
        hasher = PasswordHasher(pwd_key, pool)
        if scheme_id is None:
            return await hasher.hash_pwd(to_hash)
        return await hasher.hash_pwd_with(Scheme.from_id(scheme_id), to_hash)
    finally:
        pool.shutdown()


@main.command("check-config")
def check_config():
    """Load Settings from the environment and report problems."""
    try:
        settings = Settings()
    except ValidationError as e:
        click.secho("Config invalid:", fg="red", bold=True, err=True)
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"]) or "settings"
            click.echo(f"  {field}: {err['msg']}", err=True)
        sys.exit(1)

    click.secho("Config OK", fg="green", bold=True)
    click.echo(f"  environment:        {settings.environment}")
    click.echo(f"  token_duration_sec: {settings.token_duration_sec}")
    click.echo(f"  hash_max_workers:   {settings.hash_max_workers}")
    click.echo(f"  hash_max_pending:   {settings.hash_max_pending}")


@main.command()
@click.option("--host", default=None, help="Bind host (default: AUTHKEEP_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: AUTHKEEP_PORT)")
def serve(host: str | None, port: int | None):
    """Run the API with uvicorn."""
    import uvicorn

    try:
        settings = Settings()
    except ValidationError as e:
        _fail(f"config invalid, run `authkeep check-config` ({e.error_count()} errors)")

    uvicorn.run(
        "authkeep.main:get_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
    )


if __name__ == "__main__":
    main()
