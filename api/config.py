"""
Environment-aware configuration.
JWT settings feed the token issuer; DATABASE_URL is read by DBStorage itself.
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present

MIN_JWT_SECRET_LENGTH = 32


class BaseConfig:
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    # No default secret: startup fails without one (see validate_config)
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "AuthenticationService")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "AuthenticationService")
    JWT_EXPIRATION_MINUTES = int(os.getenv("JWT_EXPIRATION_MINUTES", "60"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False


class TestingConfig(BaseConfig):
    TESTING = True
    JWT_SECRET = os.getenv("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use")
    JWT_EXPIRATION_MINUTES = 60


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """Refuse to start with a missing or short signing secret."""
    secret = config.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET is not configured")
    if len(secret) < MIN_JWT_SECRET_LENGTH:
        raise RuntimeError(f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters long")
    if int(config.get("JWT_EXPIRATION_MINUTES", 60)) < 1:
        raise RuntimeError("JWT_EXPIRATION_MINUTES must be a positive number of minutes")
