"""
Application factory for Tech Inventory, the IT asset management tool.

Usage::

    from tech_inventory import create_app
    app = create_app()           # Uses FLASK_ENV to pick config.
    app = create_app("testing")  # Explicit config for tests.
"""

import logging
import os

from flask import Flask, flash, jsonify, redirect, render_template, request, url_for

from .config import config_by_name
from .extensions import csrf, db, login_manager, migrate

logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: One of 'development', 'testing', or 'production'.
                     Defaults to the FLASK_ENV environment variable,
                     falling back to 'development'.

    Returns:
        A fully configured Flask application instance.
    """
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")
    config_class = config_by_name.get(config_name)
    if config_class is None:
        raise ValueError(
            f"Unknown config '{config_name}'. "
            f"Valid options: {list(config_by_name.keys())}"
        )

    app = Flask(__name__)
    app.config.from_object(config_class)

    if config_name == "production":
        config_class.validate_production_secrets(app.config)

    # -- Initialize extensions ---------------------------------------------
    _register_extensions(app)

    # -- Register blueprints -----------------------------------------------
    _register_blueprints(app)

    # -- Register error handlers -------------------------------------------
    _register_error_handlers(app)

    # -- Register custom CLI commands --------------------------------------
    _register_cli_commands(app)

    # -- Configure logging -------------------------------------------------
    _configure_logging(app)

    return app


def _register_extensions(app: Flask) -> None:
    """Bind all Flask extensions to the application instance."""
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    # Imported here to avoid circular imports with models.
    from .models.user import User  # pylint: disable=import-outside-toplevel

    @login_manager.user_loader
    def load_user(user_id: str):
        """Load a user by primary key for Flask-Login session management."""
        user = db.session.get(User, int(user_id))
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        """Send API clients a 401 and browsers to the sign-in page."""
        if request.path.startswith("/api/"):
            return jsonify(error="authentication required"), 401
        flash(login_manager.login_message, login_manager.login_message_category)
        return redirect(url_for("auth.login", next=request.path))


def _register_blueprints(app: Flask) -> None:
    """
    Import and register each blueprint with its URL prefix.

    Blueprints are imported inside this function to avoid circular
    imports; models and services can safely import ``db`` from
    extensions at module level.
    """
    # pylint: disable=import-outside-toplevel

    # Dashboard at the root URL, plus the health check.
    from .blueprints.main import bp as main_bp

    app.register_blueprint(main_bp)

    # Email/password sign in, sign up and sign out.
    from .blueprints.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    # Asset forms, lifecycle actions, advisor pages, documents, exports.
    from .blueprints.assets import bp as assets_bp

    app.register_blueprint(assets_bp, url_prefix="/assets")

    # User management and the audit log.
    from .blueprints.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/admin")

    # The same lifecycle actions as JSON.
    from .blueprints.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")


def _register_error_handlers(app: Flask) -> None:
    """
    Render error pages for browsers and JSON bodies for the API.

    Requests under ``/api/`` always get ``{"error": "..."}`` so script
    clients never have to parse HTML.
    """

    def _respond(code: int, message: str):
        if request.path.startswith("/api/"):
            return jsonify(error=message), code
        return render_template(f"errors/{code}.html"), code

    @app.errorhandler(403)
    def forbidden(error):  # pylint: disable=unused-argument
        return _respond(403, "forbidden")

    @app.errorhandler(404)
    def not_found(error):  # pylint: disable=unused-argument
        return _respond(404, "not found")

    @app.errorhandler(413)
    def too_large(error):  # pylint: disable=unused-argument
        """Uploads above MAX_CONTENT_LENGTH."""
        if request.path.startswith("/api/"):
            return jsonify(error="request body too large"), 413
        flash("The uploaded file is too large.", "danger")
        return redirect(url_for("main.dashboard"))

    @app.errorhandler(500)
    def internal_error(error):  # pylint: disable=unused-argument
        db.session.rollback()
        logger.error("Unhandled error on %s %s", request.method, request.path)
        return _respond(500, "internal server error")


def _register_cli_commands(app: Flask) -> None:
    """Register custom Flask CLI commands (e.g., flask create-admin)."""
    from .cli import register_commands  # pylint: disable=import-outside-toplevel

    register_commands(app)


def _configure_logging(app: Flask) -> None:
    """
    Set up application logging from ``LOG_LEVEL``.

    Quiets SQLAlchemy's engine logger in debug mode, where
    ``SQLALCHEMY_ECHO`` already prints statements.
    """
    log_level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

    if app.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
