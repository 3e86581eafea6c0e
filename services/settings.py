"""
Immutable settings for the session services, resolved once at startup from
the Flask config mapping and passed to each component's constructor.

The mapping is loaded through AuthSettingsSchema; any validation failure
surfaces as ConfigurationError so the app never starts half-configured.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping, Optional

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, pre_load, validate

from utils.errors import ConfigurationError

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
SAMESITE_VALUES = {"lax": "Lax", "strict": "Strict", "none": "None"}

DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(days=30)
DEFAULT_SHORT_REFRESH_TTL = timedelta(days=7)

# Keys where an empty string is an error rather than "use the default"
NON_BLANK_KEYS = ("JWT_ACCESS_SECRET", "JWT_ISSUER", "JWT_AUDIENCE")


@dataclass(frozen=True)
class AuthSettings:
    access_secret: str
    algorithm: str = "HS256"
    issuer: str = "session-auth-api"
    audience: str = "session-auth-clients"
    access_ttl: timedelta = DEFAULT_ACCESS_TTL
    clock_skew: timedelta = timedelta(0)
    refresh_ttl: timedelta = DEFAULT_REFRESH_TTL
    short_refresh_ttl: timedelta = DEFAULT_SHORT_REFRESH_TTL
    cookie_name: str = "refresh_token"
    cookie_domain: Optional[str] = None
    cookie_secure: bool = False
    cookie_samesite: str = "Lax"
    cookie_path: str = "/"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "AuthSettings":
        try:
            return AuthSettingsSchema().load(config)
        except ValidationError as err:
            raise ConfigurationError(f"Invalid auth settings: {err.messages}")


class Duration(fields.Field):
    """A timedelta, or a number of `unit`s (minutes, days, ...)."""

    default_error_messages = {"invalid": "Not a valid duration."}

    def __init__(self, unit: str, **kwargs):
        super().__init__(**kwargs)
        self.unit = unit

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, timedelta):
            return value
        try:
            return timedelta(**{self.unit: float(value)})
        except (TypeError, ValueError, OverflowError):
            raise self.make_error("invalid")


class AuthSettingsSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    access_secret = fields.String(
        data_key="JWT_ACCESS_SECRET",
        required=True,
        validate=validate.Length(min=1),
        error_messages={"required": "JWT_ACCESS_SECRET is not set"},
    )
    algorithm = fields.String(data_key="JWT_ALGORITHM", validate=validate.OneOf(HMAC_ALGORITHMS))
    issuer = fields.String(data_key="JWT_ISSUER", validate=validate.Length(min=1))
    audience = fields.String(data_key="JWT_AUDIENCE", validate=validate.Length(min=1))
    access_ttl = Duration("minutes", data_key="JWT_ACCESS_TTL")
    clock_skew = Duration("seconds", data_key="JWT_CLOCK_SKEW")
    refresh_ttl = Duration("days", data_key="REFRESH_TOKEN_TTL")
    short_refresh_ttl = Duration("days", data_key="REFRESH_TOKEN_SHORT_TTL")
    cookie_name = fields.String(data_key="REFRESH_COOKIE_NAME", validate=validate.Length(min=1))
    cookie_domain = fields.String(data_key="COOKIE_DOMAIN")
    cookie_secure = fields.Boolean(data_key="COOKIE_SECURE")
    cookie_samesite = fields.String(data_key="COOKIE_SAMESITE", validate=validate.OneOf(tuple(SAMESITE_VALUES)))

    @pre_load
    def normalize(self, data, **kwargs):
        cleaned = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if not value and key not in NON_BLANK_KEYS:
                    continue
            cleaned[key] = value
        if isinstance(cleaned.get("JWT_ALGORITHM"), str):
            cleaned["JWT_ALGORITHM"] = cleaned["JWT_ALGORITHM"].upper()
        if isinstance(cleaned.get("COOKIE_SAMESITE"), str):
            cleaned["COOKIE_SAMESITE"] = cleaned["COOKIE_SAMESITE"].lower()
        return cleaned

    @post_load
    def make_settings(self, data, **kwargs):
        # non-positive durations fall back to the defaults
        for name in ("access_ttl", "clock_skew", "refresh_ttl", "short_refresh_ttl"):
            if name in data and data[name] <= timedelta(0):
                del data[name]
        if "cookie_samesite" in data:
            data["cookie_samesite"] = SAMESITE_VALUES[data["cookie_samesite"]]
        return AuthSettings(**data)
