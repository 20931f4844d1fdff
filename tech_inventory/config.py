"""
Application configuration classes.

Each class represents a deployment environment. The factory function
``create_app`` in ``tech_inventory/__init__.py`` selects the appropriate
config based on the FLASK_ENV environment variable.

Development and testing default to SQLite so the app runs with no
external services; production must point ``DATABASE_URL`` at the real
Postgres instance.
"""

import logging
import os

_logger = logging.getLogger(__name__)

# Sentinel for detecting an unset SECRET_KEY in production.
_DEFAULT_SECRET_KEY = "dev-secret-change-me"

_BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class BaseConfig:
    """
    Shared configuration values inherited by all environments.

    Secrets and connection strings are loaded from environment variables
    so they never appear in source control.
    """

    # -- Flask core --------------------------------------------------------
    SECRET_KEY: str = os.environ.get("SECRET_KEY", _DEFAULT_SECRET_KEY)

    # -- Session cookie hardening ------------------------------------------
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "Lax"
    SESSION_COOKIE_SECURE: bool = False
    PERMANENT_SESSION_LIFETIME: int = int(
        os.environ.get("PERMANENT_SESSION_LIFETIME", "3600")
    )

    # -- SQLAlchemy --------------------------------------------------------
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(_BASE_DIR, "tech_inventory.db"),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = False

    # -- Disposal documents ------------------------------------------------
    UPLOAD_FOLDER: str = os.environ.get(
        "UPLOAD_FOLDER", os.path.join(_BASE_DIR, "uploads")
    )
    # Reject request bodies above 16 MB (disposal certificates are small).
    MAX_CONTENT_LENGTH: int = int(
        os.environ.get("MAX_CONTENT_LENGTH", str(16 * 1024 * 1024))
    )

    # -- Disposal Advisor (OpenAI-compatible chat completions) -------------
    DISPOSAL_ADVISOR_API_URL: str = os.environ.get(
        "DISPOSAL_ADVISOR_API_URL",
        "https://api.openai.com/v1/chat/completions",
    )
    DISPOSAL_ADVISOR_API_KEY: str = os.environ.get("DISPOSAL_ADVISOR_API_KEY", "")
    DISPOSAL_ADVISOR_MODEL: str = os.environ.get("DISPOSAL_ADVISOR_MODEL", "gpt-4")
    DISPOSAL_ADVISOR_TIMEOUT: float = float(
        os.environ.get("DISPOSAL_ADVISOR_TIMEOUT", "30")
    )

    # -- Admin bootstrap (flask create-admin) ------------------------------
    ADMIN_EMAIL: str = os.environ.get("ADMIN_EMAIL", "")
    ADMIN_PASSWORD: str = os.environ.get("ADMIN_PASSWORD", "")
    ADMIN_NAME: str = os.environ.get("ADMIN_NAME", "Admin User")

    # -- Logging -----------------------------------------------------------
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @classmethod
    def validate_production_secrets(cls, app_config: dict) -> None:
        """
        Verify that all required secrets are set for production.

        Raises ``RuntimeError`` for hard requirements and logs warnings
        for soft requirements.

        Args:
            app_config: The ``app.config`` dict after loading the
                        config class.

        Raises:
            RuntimeError: If any critical setting is missing or still
                          set to its insecure default value.
        """
        errors: list[str] = []

        if app_config.get("SECRET_KEY") == _DEFAULT_SECRET_KEY:
            errors.append(
                "SECRET_KEY is still the insecure default. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_hex(32))"'
            )

        if not os.environ.get("DATABASE_URL"):
            errors.append(
                "DATABASE_URL is not set. Production must not fall back "
                "to the local SQLite file."
            )

        if errors:
            combined = "\n  - ".join(errors)
            raise RuntimeError(f"Production configuration errors:\n  - {combined}")

        # The inventory works without the advisor; only the AI actions fail.
        if not app_config.get("DISPOSAL_ADVISOR_API_KEY"):
            _logger.warning(
                "DISPOSAL_ADVISOR_API_KEY is not set; AI disposal "
                "suggestions will fail until it is configured."
            )

        if app_config.get("LOG_LEVEL", "").upper() == "DEBUG":
            _logger.warning(
                "LOG_LEVEL=DEBUG is not recommended in production; "
                "SQL statements and advisor prompts may appear in logs."
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: verbose logging, SQL echo enabled."""

    DEBUG: bool = True
    SQLALCHEMY_ECHO: bool = True
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    """
    Testing environment: in-memory SQLite unless TEST_DATABASE_URL is set.

    WTF_CSRF_ENABLED is disabled so form submissions in tests don't
    need CSRF tokens.
    """

    TESTING: bool = True
    WTF_CSRF_ENABLED: bool = False

    SQLALCHEMY_DATABASE_URI: str = os.environ.get("TEST_DATABASE_URL", "sqlite://")
    LOG_LEVEL: str = "DEBUG"

    # Tests never talk to a real completion endpoint.
    DISPOSAL_ADVISOR_API_URL: str = "http://advisor.invalid/v1/chat/completions"
    DISPOSAL_ADVISOR_API_KEY: str = "test-key"


class ProductionConfig(BaseConfig):
    """
    Production environment: strict settings, no debug output.

    The application factory calls ``validate_production_secrets()`` at
    startup and refuses to launch if critical values are missing.
    """

    DEBUG: bool = False
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")

    SESSION_COOKIE_SECURE: bool = True


# Lookup dict used by the application factory.
config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
