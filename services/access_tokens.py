"""
Access tokens: short-lived HMAC-signed JWTs (PyJWT).

Claims: sub (user id), iss, aud, iat, nbf, exp as numeric timestamps, plus a
random jti. Nothing is stored; expiry is the only way a token dies.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict

import jwt

from models.base_model import utcnow
from services.settings import AuthSettings
from utils.errors import (
    ConfigurationError,
    InvalidAccessToken,
    InvalidSignature,
    MalformedToken,
    TokenExpired,
)

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "iss", "aud", "iat", "nbf", "exp"]


class AccessTokenIssuer:
    def __init__(self, settings: AuthSettings, clock: Callable[[], datetime] = utcnow):
        if not settings.access_secret:
            raise ConfigurationError("JWT_ACCESS_SECRET is not set")
        self._settings = settings
        self._clock = clock

    @property
    def expires_in(self) -> int:
        return int(self._settings.access_ttl.total_seconds())

    def issue(self, user_id: str) -> str:
        now = self._clock()
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + self._settings.access_ttl).timestamp()),
            "jti": uuid.uuid4().hex,
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
        }
        return jwt.encode(payload, self._settings.access_secret, algorithm=self._settings.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate an access token. Raises TokenExpired,
        InvalidSignature or MalformedToken (all InvalidAccessToken).
        """
        if not token:
            raise MalformedToken()
        try:
            return jwt.decode(
                token,
                self._settings.access_secret,
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                leeway=self._settings.clock_skew,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidSignatureError:
            raise InvalidSignature()
        except jwt.ImmatureSignatureError:
            raise InvalidAccessToken("Access token not yet valid")
        except jwt.InvalidTokenError as exc:
            logger.debug("Access token rejected", extra={"reason": exc.__class__.__name__})
            raise MalformedToken()
