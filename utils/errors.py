"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries a stable machine code and the HTTP status the API maps it
to. Messages are fixed strings: they never include tokens, digests or
passwords, and the authentication failures never say which check failed.
"""
from __future__ import annotations


class ServiceError(Exception):
    code = "INTERNAL_ERROR"
    status = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ConfigurationError(ServiceError):
    """Fatal at startup: missing signing secret, database url, bad option."""
    code = "CONFIGURATION_ERROR"
    message = "Service is misconfigured"


class EmailTaken(ServiceError):
    code = "EMAIL_TAKEN"
    status = 409
    message = "Email already registered"


class InvalidCredentials(ServiceError):
    code = "INVALID_CREDENTIALS"
    status = 401
    message = "Invalid credentials"


class InvalidRefreshToken(ServiceError):
    code = "INVALID_REFRESH_TOKEN"
    status = 401
    message = "Invalid refresh token"


class Unauthorized(ServiceError):
    code = "UNAUTHORIZED"
    status = 401
    message = "Unauthorized"


class StoreError(ServiceError):
    """Transient storage failure. Not retried here."""
    code = "STORE_ERROR"
    message = "Storage is unavailable"


# Access token verification failures. The HTTP layer only ever reports
# these as Unauthorized.
class InvalidAccessToken(ServiceError):
    code = "INVALID_ACCESS_TOKEN"
    status = 401
    message = "Invalid access token"


class TokenExpired(InvalidAccessToken):
    message = "Access token expired"


class InvalidSignature(InvalidAccessToken):
    message = "Access token signature mismatch"


class MalformedToken(InvalidAccessToken):
    message = "Malformed access token"
