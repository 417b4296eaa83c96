"""Keyed HMAC-SHA512 primitive shared by password scheme 01 and tokens.

The content bytes are fed first, then the salt bytes, and the digest is
returned as unpadded url-safe base64 (86 chars for a 64-byte digest).
"""

import hashlib
import hmac

from authkeep.auth.encoding import b64u_encode


class MacKeyError(ValueError):
    """Raised when the MAC key is unusable (empty)."""


def hmac_sha512(key: bytes, content: str, salt: bytes) -> bytes:
    if not key:
        raise MacKeyError("HMAC key must not be empty")
    mac = hmac.new(key, digestmod=hashlib.sha512)
    mac.update(content.encode("utf-8"))
    mac.update(salt)
    return mac.digest()


def hmac_sha512_b64u(key: bytes, content: str, salt: bytes) -> str:
    return b64u_encode(hmac_sha512(key, content, salt))
