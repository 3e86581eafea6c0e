"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Opaque refresh token generation and digesting
"""
from __future__ import annotations

import base64
import hashlib
import secrets
from functools import lru_cache
from typing import Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ph = PasswordHasher()

OPAQUE_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2. Never raises on mismatch.
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return ph.hash(secrets.token_urlsafe(16))


def burn_password_check(password: str) -> None:
    """Spend one argon2 verification when there is no user to check against,
    so unknown emails and wrong passwords take the same time."""
    verify_password(password, _dummy_hash())


def digest_token(plaintext: str) -> str:
    """SHA-256 hex digest of an opaque token; the only form that is stored."""
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


def generate_opaque_token() -> Tuple[str, str]:
    """Return (plaintext, digest) for a new 256-bit opaque token.

    The plaintext is url-safe base64 without padding (43 characters).
    """
    raw = secrets.token_bytes(OPAQUE_TOKEN_BYTES)
    plaintext = base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
    return plaintext, digest_token(plaintext)
