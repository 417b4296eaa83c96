"""Password hashing schemes.

Learn: every stored password carries the id of the scheme that produced
it (`#01#...`, `#02#...`), so the default scheme can move forward without
invalidating what is already in the database. The set of schemes is
closed and small, so it is an Enum with one branch per member rather
than an open plugin registry.

- "01": HMAC-SHA512 keyed by the password key over content + salt bytes.
  The salt is NOT in the output, so validation needs the stored salt and
  rotating a user's pwd_salt silently invalidates their "01" hash.
- "02": Argon2id over the HMAC-peppered content with the salt bytes as
  the Argon2 salt. The PHC output string embeds salt and parameters, so
  validation never reads the stored salt column.

A scheme does not know whether it is current or outdated; the password
hasher compares against DEFAULT_SCHEME for that.
"""

import secrets
import uuid
from dataclasses import dataclass, field
from enum import Enum

from argon2.exceptions import HashingError, VerificationError, VerifyMismatchError
from argon2.low_level import Type, hash_secret, verify_secret

from authkeep.auth.mac import MacKeyError, hmac_sha512, hmac_sha512_b64u

# Argon2id parameters (RFC 9106 / OWASP second recommended profile)
ARGON2_TIME_COST = 2
ARGON2_MEMORY_COST = 19456  # KiB
ARGON2_PARALLELISM = 1
ARGON2_HASH_LEN = 32
ARGON2_VERSION = 19


class SchemeError(Exception):
    """Base for precise, internal-only scheme failures."""


class SchemeKeyError(SchemeError):
    pass


class SchemeSaltError(SchemeError):
    pass


class SchemeHashError(SchemeError):
    pass


class PwdValidateError(SchemeError):
    """Content does not match the stored blob."""


class SchemeNotFound(SchemeError):
    def __init__(self, scheme_id: str):
        super().__init__(f"scheme not found: {scheme_id!r}")
        self.scheme_id = scheme_id


@dataclass(frozen=True)
class ContentToHash:
    content: str = field(repr=False)  # clear content, never logged
    salt: uuid.UUID


class SchemeStatus(Enum):
    OK = "ok"  # uses the default scheme
    OUTDATED = "outdated"  # valid, but should be re-hashed


class Scheme(Enum):
    HMAC_SHA512 = "01"
    ARGON2ID = "02"

    @classmethod
    def from_id(cls, scheme_id: str) -> "Scheme":
        try:
            return cls(scheme_id)
        except ValueError:
            raise SchemeNotFound(scheme_id) from None

    @property
    def scheme_id(self) -> str:
        return self.value

    def hash(self, key: bytes, to_hash: ContentToHash) -> str:
        if self is Scheme.HMAC_SHA512:
            return _hmac_hash(key, to_hash)
        return _argon2_hash(key, to_hash)

    def validate(self, key: bytes, to_hash: ContentToHash, pwd_ref: str) -> None:
        """Return None on match, raise a SchemeError otherwise."""
        if self is Scheme.HMAC_SHA512:
            return _hmac_validate(key, to_hash, pwd_ref)
        return _argon2_validate(key, to_hash, pwd_ref)


DEFAULT_SCHEME = Scheme.ARGON2ID


def _salt_bytes(salt) -> bytes:
    if not isinstance(salt, uuid.UUID):
        raise SchemeSaltError("salt must be a UUID")
    return salt.bytes


# ─── Scheme 01: HMAC-SHA512 ──────────────────────────────


def _hmac_hash(key: bytes, to_hash: ContentToHash) -> str:
    try:
        return hmac_sha512_b64u(key, to_hash.content, _salt_bytes(to_hash.salt))
    except MacKeyError:
        raise SchemeKeyError("invalid password key") from None


def _hmac_validate(key: bytes, to_hash: ContentToHash, pwd_ref: str) -> None:
    computed = _hmac_hash(key, to_hash)
    if not secrets.compare_digest(computed.encode("ascii"), pwd_ref.encode("utf-8")):
        raise PwdValidateError()


# ─── Scheme 02: Argon2id with HMAC pepper ────────────────


def _peppered(key: bytes, content: str) -> bytes:
    # Salt is empty here: Argon2 gets the real salt, the MAC only mixes in the key.
    try:
        return hmac_sha512(key, content, b"")
    except MacKeyError:
        raise SchemeKeyError("invalid password key") from None


def _argon2_hash(key: bytes, to_hash: ContentToHash) -> str:
    try:
        encoded = hash_secret(
            secret=_peppered(key, to_hash.content),
            salt=_salt_bytes(to_hash.salt),
            time_cost=ARGON2_TIME_COST,
            memory_cost=ARGON2_MEMORY_COST,
            parallelism=ARGON2_PARALLELISM,
            hash_len=ARGON2_HASH_LEN,
            type=Type.ID,
            version=ARGON2_VERSION,
        )
    except HashingError:
        raise SchemeHashError("argon2 hashing failed") from None
    return encoded.decode("ascii")


def _argon2_validate(key: bytes, to_hash: ContentToHash, pwd_ref: str) -> None:
    # to_hash.salt is unused: the PHC string carries its own salt.
    if not pwd_ref.startswith("$argon2id$"):
        raise SchemeHashError("not an argon2id hash")
    try:
        verify_secret(pwd_ref.encode("ascii"), _peppered(key, to_hash.content), Type.ID)
    except VerifyMismatchError:
        raise PwdValidateError() from None
    except (VerificationError, UnicodeEncodeError):
        raise SchemeHashError("unparsable argon2 hash") from None
