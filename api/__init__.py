from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import DEFAULT_JWT_SECRET, get_config
from .errors import register_error_handlers
from models import DBStorage
from models.refresh_token_store import RefreshTokenStore
from security.passwords import PasswordHasher
from security.service import AuthenticationService
from security.tokens import TokenSigner

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Chirpy API",
        "version": "1.0.0",
        "description": "Authentication and session endpoints for the Chirpy API.",
    },
    "basePath": "/",
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        },
        "ApiKey": {
            "type": "apiKey",
            "name": "X-Api-Key",
            "in": "header",
            "description": "Shared key for the webhook relay."
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


def build_auth_service(config, storage, clock=None) -> AuthenticationService:
    """Wire the security components from immutable config values."""
    clock_kwargs = {"clock": clock} if clock else {}
    signer = TokenSigner(
        secret=config["JWT_SECRET"],
        issuer=config["JWT_ISSUER"],
        default_ttl=config["ACCESS_TOKEN_EXPIRES"],
        algorithm=config["JWT_ALGORITHM"],
        **clock_kwargs,
    )
    refresh_tokens = RefreshTokenStore(storage, ttl=config["REFRESH_TOKEN_EXPIRES"], **clock_kwargs)
    return AuthenticationService(storage, PasswordHasher(), signer, refresh_tokens)


def create_app(config_name: str | None = None, overrides: dict | None = None, clock=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` is applied on top of the selected config class (tests use it
    for per-test database URLs and secrets); `clock` replaces the wall clock
    used by the token signer and refresh-token store.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    if not app.debug and not app.testing and app.config["JWT_SECRET"] == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not set in environment variables")
    elif app.config["JWT_SECRET"] == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; using the built-in development secret")
    if not app.config["POLKA_KEY"]:
        logger.warning("POLKA_KEY is not set; webhook calls will be rejected")

    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions["storage"] = storage
    app.extensions["auth_service"] = build_auth_service(app.config, storage, clock=clock)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .webhooks import bp as webhooks_bp
    from .admin import bp as admin_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(webhooks_bp, url_prefix="/api/v1")
    app.register_blueprint(admin_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Chirpy API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
