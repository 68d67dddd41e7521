import os
import secrets
import warnings

import redis
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def env_flag(name, default="False"):
    return os.environ.get(name, default).lower() == "true"


def env_int(name, default):
    return int(os.environ.get(name) or default)


def _secret_key():
    key = os.environ.get("SECRET_KEY")
    if not key:
        key = secrets.token_urlsafe(32)
        warnings.warn(
            "SECRET_KEY not set! Sessions will not survive a restart. "
            "Run 'python3 generate_secrets.py' to generate one.",
            UserWarning,
        )
    return key


class Config:
    SECRET_KEY = _secret_key()

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """DATABASE_URL wins; otherwise DB_TYPE=postgresql with DB_* parts, else local SQLite"""
        database_url = os.environ.get("DATABASE_URL")
        if database_url:
            return database_url

        if os.environ.get("DB_TYPE", "sqlite").lower() == "postgresql":
            user = os.environ.get("DB_USER") or "fanhub"
            password = os.environ.get("DB_PASSWORD") or "fanhub"
            host = os.environ.get("DB_HOST") or "localhost"
            port = os.environ.get("DB_PORT") or "5432"
            name = os.environ.get("DB_NAME") or "fanhub"
            return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{name}"

        return "sqlite:///" + os.path.join(basedir, "fanhub.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity proxy headers
    AUTH_SUBJECT_HEADER = os.environ.get("AUTH_SUBJECT_HEADER", "X-Auth-Subject")
    AUTH_EMAIL_HEADER = os.environ.get("AUTH_EMAIL_HEADER", "X-Auth-Email")
    AUTH_NAME_HEADER = os.environ.get("AUTH_NAME_HEADER", "X-Auth-Name")
    AUTH_PICTURE_HEADER = os.environ.get("AUTH_PICTURE_HEADER", "X-Auth-Picture")

    # Competition and leaderboard
    TIMEZONE = os.environ.get("TIMEZONE", "Australia/Sydney")
    LEADERBOARD_DEFAULT_LIMIT = env_int("LEADERBOARD_DEFAULT_LIMIT", 100)
    STREAK_LOOKBACK = env_int("STREAK_LOOKBACK", 50)
    MATCHES_DEFAULT_LIMIT = env_int("MATCHES_DEFAULT_LIMIT", 20)

    # Flask-Caching
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = env_int("CACHE_DEFAULT_TIMEOUT", 300)
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "fanhub:"

    # Flask-Limiter
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    PREDICTION_RATE_LIMIT = os.environ.get("PREDICTION_RATE_LIMIT", "10 per minute")

    # Flask-SocketIO
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "eventlet")
    SOCKETIO_CORS_ORIGINS = os.environ.get("SOCKETIO_CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = env_flag("LOG_TO_CONSOLE", "True")
    LOG_TO_FILE = env_flag("LOG_TO_FILE", "True")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    SLOW_FUNCTION_THRESHOLD = float(os.environ.get("SLOW_FUNCTION_THRESHOLD", "1.0"))

    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_ECHO = env_flag("SQLALCHEMY_ECHO")

    def __init__(self):
        super().__init__()
        try:
            redis.Redis.from_url(self.CACHE_REDIS_URL).ping()
        except redis.exceptions.ConnectionError:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn("Redis not available, caching in process memory.", UserWarning)


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")


class TestingConfig(Config):
    """In-memory database, process-local cache, no rate limits or log files"""

    TESTING = True
    CACHE_TYPE = "SimpleCache"
    CACHE_REDIS_URL = None
    RATELIMIT_ENABLED = False
    SOCKETIO_ASYNC_MODE = "threading"
    LOG_TO_CONSOLE = False
    LOG_TO_FILE = False
    TIMEZONE = "UTC"

    def _build_database_uri(self):
        return "sqlite:///:memory:"


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
