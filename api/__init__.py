from flask import Flask, current_app
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import get_config
from .errors import register_error_handlers
from models.db_storage import DBStorage
from services import build_sessions
from services.settings import AuthSettings

logger = logging.getLogger(__name__)

EXTENSION_KEY = "session_auth"

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Session Auth API",
        "version": "1.0.0",
        "description": "Password login, short-lived access tokens and rotating refresh tokens.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    Settings, storage and services are built once here and kept on
    app.extensions; a missing signing secret or database url raises
    ConfigurationError before the app is returned.
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    settings = AuthSettings.from_mapping(app.config)
    storage = DBStorage(app.config.get("DATABASE_URL"), echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions[EXTENSION_KEY] = {
        "settings": settings,
        "storage": storage,
        "sessions": build_sessions(storage, settings),
    }

    # The refresh cookie needs credentialed CORS, so origins are an explicit list
    CORS(app, resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", [])}}, supports_credentials=True)

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Session Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    logger.info("Application created", extra={"env": app.config.get("APP_ENV")})
    return app


def get_sessions():
    return current_app.extensions[EXTENSION_KEY]["sessions"]


def get_settings() -> AuthSettings:
    return current_app.extensions[EXTENSION_KEY]["settings"]


def get_storage() -> DBStorage:
    return current_app.extensions[EXTENSION_KEY]["storage"]
