"""Password hashing with transparent scheme migration.

Learn: stored passwords look like `#<scheme_id>#<blob>`. New hashes always
use DEFAULT_SCHEME. Validation accepts any registered scheme, and reports
SchemeStatus.OUTDATED when the stored hash was made with an older one.
The caller is expected to re-hash right then, because that is the only
moment the clear password is available.

Both operations run on the HashWorkerPool so that Argon2 never blocks the
event loop. Failures are collapsed:
- PwdValidateFail: anything wrong with the credential (bad prefix,
  unknown scheme, corrupt blob, mismatch). One opaque error, so nothing
  outside this module can tell *why* a password was rejected.
- PwdDispatchFail: the pool could not run the work (saturated, shut
  down, timed out). Not an authentication verdict.
"""

import uuid

import structlog

from authkeep.auth.schemes import (
    DEFAULT_SCHEME,
    ContentToHash,
    Scheme,
    SchemeError,
    SchemeStatus,
)
from authkeep.auth.workers import DispatchError, HashWorkerPool

logger = structlog.get_logger()


class PwdError(Exception):
    """Base for password hasher errors."""


class PwdWithSchemeFailedParse(PwdError):
    """Stored hash has no `#<scheme_id>#` prefix. Internal only."""


class PwdValidateFail(PwdError):
    """Opaque validation failure, safe to surface to callers."""


class PwdHashFail(PwdError):
    """Hashing with the default scheme failed."""


class PwdDispatchFail(PwdError):
    """Hashing work could not be dispatched or did not complete."""


def split_scheme_ref(pwd_ref: str) -> tuple[str, str]:
    """Split `#<scheme_id>#<blob>` into (scheme_id, blob)."""
    if not pwd_ref.startswith("#"):
        raise PwdWithSchemeFailedParse()
    scheme_id, sep, blob = pwd_ref[1:].partition("#")
    if not sep or not scheme_id or not scheme_id.isalnum():
        raise PwdWithSchemeFailedParse()
    return scheme_id, blob


class PasswordHasher:
    """Hashes and validates passwords against the closed scheme set."""

    def __init__(
        self,
        pwd_key: bytes,
        pool: HashWorkerPool,
        default_scheme: Scheme = DEFAULT_SCHEME,
    ):
        self._pwd_key = pwd_key
        self.pool = pool
        self.default_scheme = default_scheme

    def __repr__(self) -> str:
        return f"PasswordHasher(default_scheme={self.default_scheme.scheme_id!r})"

    async def hash_pwd(self, to_hash: ContentToHash) -> str:
        """Hash with the default scheme. Returns `#<scheme_id>#<blob>`."""
        return await self.hash_pwd_with(self.default_scheme, to_hash)

    async def hash_pwd_with(self, scheme: Scheme, to_hash: ContentToHash) -> str:
        try:
            blob = await self.pool.run(scheme.hash, self._pwd_key, to_hash)
        except DispatchError as e:
            raise PwdDispatchFail(str(e)) from e
        except SchemeError as e:
            logger.error("pwd.hash_failed", scheme=scheme.scheme_id, error=type(e).__name__)
            raise PwdHashFail() from None
        return f"#{scheme.scheme_id}#{blob}"

    async def validate_pwd(self, to_hash: ContentToHash, pwd_ref: str) -> SchemeStatus:
        """Validate clear content against a stored hash.

        Returns SchemeStatus.OK or SchemeStatus.OUTDATED. Raises
        PwdValidateFail or PwdDispatchFail.
        """
        try:
            scheme_id, blob = split_scheme_ref(pwd_ref)
            scheme = Scheme.from_id(scheme_id)
            await self.pool.run(scheme.validate, self._pwd_key, to_hash, blob)
        except DispatchError as e:
            raise PwdDispatchFail(str(e)) from e
        except (PwdWithSchemeFailedParse, SchemeError) as e:
            logger.debug("pwd.validate_failed", reason=type(e).__name__)
            raise PwdValidateFail() from None

        if scheme is self.default_scheme:
            return SchemeStatus.OK
        return SchemeStatus.OUTDATED

    async def spend_validate_work(self, content: str) -> None:
        """Do the hashing work of a validate_pwd without a stored hash.

        Login calls this when there is nothing to validate against (unknown
        username, account without a pwd), so the response takes as long as
        a real mismatch. Raises PwdDispatchFail like validate_pwd.
        """
        await self.hash_pwd(ContentToHash(content=content, salt=uuid.uuid4()))
