"""
Environment-aware configuration.
Values come from the environment (and .env via python-dotenv) once at import.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEFAULT_JWT_SECRET = "dev-secret-change-me"


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///chirpy.db")
    SQL_ECHO = _bool_env("SQL_ECHO")

    # access tokens
    JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "chirpy")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "3600")))
    # refresh tokens
    REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.getenv("REFRESH_TOKEN_EXPIRES_DAYS", "60")))

    # webhook relay shared key
    POLKA_KEY = os.getenv("POLKA_KEY", "")
    API_KEY_HEADER = os.getenv("API_KEY_HEADER", "X-Api-Key")

    # destructive admin reset is only reachable on the dev platform
    PLATFORM = os.getenv("PLATFORM", "")
    ALLOW_RESET = PLATFORM == "dev"


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "testing-secret-0123456789abcdef01234567"
    POLKA_KEY = "test-polka-key"
    PLATFORM = "dev"
    ALLOW_RESET = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    ALLOW_RESET = False


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
