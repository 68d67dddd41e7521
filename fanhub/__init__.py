import importlib
import logging
import os

import redis
from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
socketio = SocketIO()
cache = Cache()
migrate = Migrate()


def get_real_ip():
    """Client address as seen by the reverse proxy in front of the app"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or get_remote_address()


limiter = Limiter(key_func=get_real_ip, default_limits=["2000 per hour"])

BLUEPRINTS = (
    ("fanhub.routes.auth", "/auth"),
    ("fanhub.routes.api", "/api"),
    ("fanhub.routes.admin", "/admin"),
)

HTTP_ERROR_MESSAGES = {
    400: "Bad request",
    401: "Authentication required",
    403: "Forbidden",
    404: "Resource not found",
    405: "Method not allowed",
    429: "Too many requests",
}


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")
    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)

    from fanhub.utils.logging_config import setup_logging

    setup_logging(app)

    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    init_socketio(app)

    for module_name, url_prefix in BLUEPRINTS:
        blueprint = importlib.import_module(module_name).bp
        app.register_blueprint(blueprint, url_prefix=url_prefix)

    register_error_handlers(app)

    with app.app_context():
        db.create_all()

    logger.info(f"Fan Hub started with '{config_name}' configuration")
    return app


def init_socketio(app):
    """Attach the live match relay, sharing events through Redis when it is reachable"""
    allowed_origins = app.config.get("SOCKETIO_CORS_ORIGINS", "*")
    if allowed_origins == "*" and not app.debug and not app.testing:
        allowed_origins = os.environ.get("ALLOWED_ORIGINS", "https://nrlfanhub.example.com").split(",")

    message_queue = None
    redis_url = app.config.get("CACHE_REDIS_URL") or os.environ.get("REDIS_URL")
    if redis_url and not app.testing:
        try:
            redis.Redis.from_url(redis_url).ping()
            message_queue = redis_url
            logger.info(f"Live updates fan out through Redis at {redis_url}")
        except redis.exceptions.ConnectionError as e:
            logger.warning(f"Redis unavailable, live updates limited to this process: {e}")

    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "eventlet"),
        message_queue=message_queue,
    )


def register_error_handlers(app):
    """Render every failure as {"error": message} JSON"""
    from fanhub.errors import FanHubError

    @app.after_request
    def add_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not app.debug and not app.testing:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    @app.errorhandler(FanHubError)
    def handle_fanhub_error(error):
        level = logging.ERROR if error.status_code >= 500 else logging.INFO
        app.logger.log(level, f"{type(error).__name__}: {error.message} - {request.method} {request.path}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        message = HTTP_ERROR_MESSAGES.get(error.code, error.name)
        return jsonify({"error": message}), error.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.exception(f"Unhandled database error on {request.path}: {error}")
        return jsonify({"error": "Internal server error"}), 500


# Models and socket handlers register with the extensions above
from fanhub import models, socketio_handlers  # noqa: F401, E402
