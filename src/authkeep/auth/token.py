"""Signed, expiring session tokens.

Learn: the token is three dot-separated segments:

    b64u(ident) . b64u(exp_rfc3339) . signature_b64u

The signature is HMAC-SHA512 (the same primitive as password scheme 01,
but keyed by the separate token key) over `b64u(ident).b64u(exp)` plus
the user's token_salt. Changing a user's token_salt therefore revokes
every token they hold.

Tokens are immutable. Each successful request gets a *new* token with a
refreshed expiration; an older token stays valid until its own exp.
"""

import secrets
from dataclasses import dataclass

from authkeep.auth.encoding import (
    B64uDecodeError,
    b64u_decode_to_string,
    b64u_encode,
    now_utc,
    now_utc_plus_sec_str,
    parse_utc,
)
from authkeep.auth.mac import MacKeyError, hmac_sha512_b64u


class TokenError(Exception):
    """Raised when token parsing, signing or validation fails."""


class InvalidFormat(TokenError):
    pass


class CannotDecodeIdent(TokenError):
    pass


class CannotDecodeExp(TokenError):
    pass


class TokenSignFail(TokenError):
    pass


class TokenSignatureNotMatching(TokenError):
    pass


class TokenExpNotIso(TokenError):
    pass


class TokenExpired(TokenError):
    pass


@dataclass(frozen=True)
class Token:
    ident: str  # e.g. username
    exp: str  # RFC3339
    sign_b64u: str

    @classmethod
    def parse(cls, token_str: str) -> "Token":
        splits = token_str.split(".")
        if len(splits) != 3 or not all(splits):
            raise InvalidFormat()
        ident_b64u, exp_b64u, sign_b64u = splits

        try:
            ident = b64u_decode_to_string(ident_b64u)
        except B64uDecodeError:
            raise CannotDecodeIdent() from None
        try:
            exp = b64u_decode_to_string(exp_b64u)
        except B64uDecodeError:
            raise CannotDecodeExp() from None

        return cls(ident=ident, exp=exp, sign_b64u=sign_b64u)

    def __str__(self) -> str:
        return f"{b64u_encode(self.ident)}.{b64u_encode(self.exp)}.{self.sign_b64u}"


# ─── Generic gen & validation (key passed in) ────────────


def generate_token(ident: str, duration_sec: float, salt: str, key: bytes) -> Token:
    exp = now_utc_plus_sec_str(duration_sec)
    sign_b64u = token_sign_into_b64u(ident, exp, salt, key)
    return Token(ident=ident, exp=exp, sign_b64u=sign_b64u)


def validate_token(origin_token: Token, salt: str, key: bytes) -> None:
    """Check signature, then expiration. Raises a TokenError subclass."""
    new_sign_b64u = token_sign_into_b64u(origin_token.ident, origin_token.exp, salt, key)
    if not secrets.compare_digest(
        new_sign_b64u.encode("ascii"), origin_token.sign_b64u.encode("utf-8")
    ):
        raise TokenSignatureNotMatching()

    try:
        origin_exp = parse_utc(origin_token.exp)
    except ValueError:
        raise TokenExpNotIso() from None

    if origin_exp <= now_utc():
        raise TokenExpired()


def token_sign_into_b64u(ident: str, exp: str, salt: str, key: bytes) -> str:
    content = f"{b64u_encode(ident)}.{b64u_encode(exp)}"
    try:
        return hmac_sha512_b64u(key, content, salt.encode("utf-8"))
    except MacKeyError:
        raise TokenSignFail() from None


# ─── Web token (key + duration from config) ──────────────


class TokenSigner:
    """Binds the process token key and token lifetime."""

    def __init__(self, token_key: bytes, duration_sec: float):
        self._token_key = token_key
        self.duration_sec = duration_sec

    def __repr__(self) -> str:
        return f"TokenSigner(duration_sec={self.duration_sec!r})"

    def generate_web_token(self, ident: str, salt: str) -> Token:
        return generate_token(ident, self.duration_sec, salt, self._token_key)

    def validate_web_token(self, origin_token: Token, salt: str) -> None:
        validate_token(origin_token, salt, self._token_key)
