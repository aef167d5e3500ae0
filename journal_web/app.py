"""
Flask application factory for the journal API.
"""
from dataclasses import dataclass
from typing import Optional

from flask import Flask, current_app, jsonify
from flask_login import current_user
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException

from journal_press.config import Config
from journal_press.errors import (
    BackendUnavailableError,
    JournalPressError,
    LoginRequiredError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from journal_press.library import CatalogService
from journal_press.models import CurrentUser
from journal_press.storage import LocalFileStorage
from journal_press.workflow import SubmissionWorkflow

from .database import User, db
from .extensions import csrf, limiter, login_manager
from .sql_catalog import SqlCatalogStore

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (LoginRequiredError, 401),
    (PermissionDeniedError, 403),
    (BackendUnavailableError, 503),
)


@dataclass
class Services:
    """Domain services shared by the blueprints of one app."""
    config: Config
    store: SqlCatalogStore
    storage: LocalFileStorage
    workflow: SubmissionWorkflow
    catalog: CatalogService


def services() -> Services:
    return current_app.extensions["journal_press"]


def current_actor() -> Optional[CurrentUser]:
    """The logged-in user as the core sees it, or None for anonymous requests."""
    if not current_user.is_authenticated:
        return None
    return CurrentUser(id=current_user.id, is_admin=bool(current_user.is_admin))


def error_response(message, status):
    return jsonify({"error": message}), status


def _status_for(error: JournalPressError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(JournalPressError)
    def journal_press_error(e):
        status = _status_for(e)
        if status >= 500:
            app.logger.error(f"{type(e).__name__}: {e.message}")
        else:
            app.logger.info(f"{type(e).__name__}: {e.message}")
        return error_response(e.message, status)

    @app.errorhandler(CSRFError)
    def csrf_error(e):
        app.logger.warning(f"CSRF check failed: {e.description}")
        return error_response(e.description, 400)

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return error_response("Rate limit exceeded. Please try again later.", 429)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return error_response(e.description or e.name, e.code)

    @app.errorhandler(Exception)
    def internal_error(e):
        app.logger.error(f"Unhandled error: {e}", exc_info=True)
        db.session.rollback()
        return error_response("Internal server error", 500)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return error_response("You need to be logged in.", 401)


def create_app(config: Optional[Config] = None, **overrides) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Domain configuration; read from the environment when omitted
        **overrides: Extra Flask config keys (e.g. TESTING, WTF_CSRF_ENABLED)
    """
    config = config or Config.from_env()
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.SECRET_KEY,
        SQLALCHEMY_DATABASE_URI=config.DATABASE_URL,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        RATELIMIT_DEFAULT=config.RATELIMIT_DEFAULT,
        RATELIMIT_HEADERS_ENABLED=True,
        RATELIMIT_STORAGE_URI="memory://",
        MAX_CONTENT_LENGTH=50 * 1024 * 1024,
    )
    app.config.update(overrides)
    app.logger.setLevel(config.LOG_LEVEL.upper())

    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    store = SqlCatalogStore(db)
    storage = LocalFileStorage(config.STORAGE_DIR, config.SECRET_KEY)
    app.extensions["journal_press"] = Services(
        config=config,
        store=store,
        storage=storage,
        workflow=SubmissionWorkflow(store, config),
        catalog=CatalogService(store, storage, config),
    )

    from .admin_routes import admin_bp
    from .auth_routes import auth_bp
    from .catalog_routes import catalog_bp
    from .submission_routes import submission_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(submission_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)

    with app.app_context():
        db.create_all()

    return app
