"""Base64url and RFC3339 helpers shared by the hashing and token code.

Everything that crosses a text boundary (hash blobs, token segments,
secret keys in env vars) is normalized to url-safe base64 without
padding. This is a transport convenience, not a security property.
"""

import base64
import binascii
from datetime import datetime, timedelta, timezone


class B64uDecodeError(ValueError):
    """Raised when a string is not valid unpadded url-safe base64.

    Carries no detail about the input so it can't be logged by accident.
    """


def b64u_encode(content: str | bytes) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return base64.urlsafe_b64encode(content).decode("ascii").rstrip("=")


def b64u_decode(b64u: str) -> bytes:
    if len(b64u) % 4 == 1 or any(c in b64u for c in "=+/"):
        raise B64uDecodeError()
    try:
        return base64.b64decode(
            b64u + "=" * (-len(b64u) % 4), altchars=b"-_", validate=True
        )
    except (binascii.Error, ValueError):
        raise B64uDecodeError() from None


def b64u_decode_to_string(b64u: str) -> str:
    try:
        return b64u_decode(b64u).decode("utf-8")
    except UnicodeDecodeError:
        raise B64uDecodeError() from None


# ─── Time ────────────────────────────────────────────────


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def format_time(moment: datetime) -> str:
    """Format as RFC3339 in UTC with a trailing Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def now_utc_plus_sec_str(sec: float) -> str:
    return format_time(now_utc() + timedelta(seconds=sec))


def parse_utc(moment: str) -> datetime:
    """Parse an RFC3339 timestamp. An explicit offset (or Z) is required."""
    if "T" not in moment and "t" not in moment:
        raise ValueError(f"not an RFC3339 timestamp: {moment!r}")
    text = moment[:-1] + "+00:00" if moment[-1:] in ("Z", "z") else moment
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"RFC3339 timestamp without offset: {moment!r}")
    return parsed
