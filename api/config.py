"""
Environment-aware configuration.
The environment is read once here; create_app() turns the chosen class into
an immutable AuthSettings for the services.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        return default
    return value if value > 0 else default


class BaseConfig:
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    # CORS: comma-separated list of frontend origins; credentials are allowed for the refresh cookie
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

    DATABASE_URL = os.getenv("DATABASE_URL")
    SQL_ECHO = _env_bool("SQL_ECHO")

    # Access tokens. No default secret: startup fails without one.
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "session-auth-api")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "session-auth-clients")
    JWT_ACCESS_TTL = timedelta(minutes=_env_int("JWT_ACCESS_TTL_MIN", 15))
    JWT_CLOCK_SKEW = timedelta(seconds=_env_int("JWT_CLOCK_SKEW_SECONDS", 0))

    # Refresh tokens
    REFRESH_TOKEN_TTL = timedelta(days=_env_int("REFRESH_TOKEN_TTL_DAYS", 30))
    REFRESH_TOKEN_SHORT_TTL = timedelta(days=_env_int("REFRESH_TOKEN_SHORT_TTL_DAYS", 7))
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refresh_token")
    COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
    COOKIE_SECURE = _env_bool("COOKIE_SECURE")
    COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    DATABASE_URL = BaseConfig.DATABASE_URL or "sqlite:///session-auth.db"


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite:///session-auth-test.db"


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", "true")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
