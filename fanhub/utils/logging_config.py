"""
Logging setup for the Fan Hub

Every record carries the request method, path and the identity subject
forwarded by the proxy, so a leaderboard or scoring problem can be traced
back to the caller. Outside a request those fields read "-".
"""

import logging
import logging.handlers
import os

from flask import current_app, has_request_context, request

BASE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
REQUEST_FORMAT = BASE_FORMAT + " [%(method)s %(path)s] [subject=%(subject)s]"
ERROR_FORMAT = REQUEST_FORMAT + " [%(pathname)s:%(lineno)d]"

QUIET_LOGGERS = ("werkzeug", "engineio", "socketio", "flask_limiter", "sqlalchemy.engine")


class RequestContextFilter(logging.Filter):
    """Attach method, path and identity subject to log records"""

    def filter(self, record):
        record.method = record.path = record.subject = "-"
        if has_request_context():
            record.method = request.method
            record.path = request.path
            header = current_app.config.get("AUTH_SUBJECT_HEADER", "X-Auth-Subject")
            record.subject = request.headers.get(header, "-")
        return True


class ColoredFormatter(logging.Formatter):
    """Level names in colour for the development console"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # Colour a copy; file handlers share the original record
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(path, level, fmt, max_mb, backups):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """
    Configure the root logger from LOG_LEVEL, LOG_TO_CONSOLE, LOG_TO_FILE
    and LOG_DIR

    Args:
        app: Flask application instance
    """
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        if app.debug:
            console_handler.setFormatter(ColoredFormatter(REQUEST_FORMAT, datefmt="%H:%M:%S"))
        else:
            console_handler.setFormatter(
                logging.Formatter(BASE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
        console_handler.addFilter(RequestContextFilter())
        root_logger.addHandler(console_handler)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(os.path.join(log_dir, "fanhub.log"), log_level, REQUEST_FORMAT, 10, 5)
        )
        root_logger.addHandler(
            _rotating_handler(os.path.join(log_dir, "errors.log"), logging.ERROR, ERROR_FORMAT, 5, 3)
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")
