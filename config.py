import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


class Config:
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "SECRET_KEY not set! Using auto-generated key. "
            "Set SECRET_KEY in the environment or .env file.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "prediction_league_db"
            db_user = os.environ.get("DB_USER") or "league_user"
            db_password = os.environ.get("DB_PASSWORD") or "league_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "app.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cron endpoint authentication
    CRON_SECRET = os.environ.get("CRON_SECRET")

    # Competition rules
    CUP_ACTIVATION_THRESHOLD = float(os.environ.get("CUP_ACTIVATION_THRESHOLD", 60))

    # Summary email trigger (season completion)
    APP_URL = os.environ.get("APP_URL", "http://localhost:5000")
    SUMMARY_EMAIL_TIMEOUT = int(os.environ.get("SUMMARY_EMAIL_TIMEOUT", 30))

    # Cron alerting
    CRON_ALERTS_ENABLED = os.environ.get("CRON_ALERTS_ENABLED", "false").lower() == "true"
    CRON_WEBHOOK_URL = os.environ.get("CRON_WEBHOOK_URL")
    CRON_ALERT_EMAILS = [
        email.strip()
        for email in os.environ.get("CRON_ALERT_EMAILS", "").split(",")
        if email.strip()
    ]
    CRON_FAILURE_THRESHOLD = int(os.environ.get("CRON_FAILURE_THRESHOLD", 3))
    CRON_PERFORMANCE_THRESHOLD_MS = int(
        os.environ.get("CRON_PERFORMANCE_THRESHOLD_MS", 300000)
    )  # 5 minutes
    CRON_ALERT_COOLDOWN_MS = int(
        os.environ.get("CRON_ALERT_COOLDOWN_MS", 3600000)
    )  # 1 hour

    # Email configuration
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = os.environ.get("MAIL_USE_TLS", "true").lower() in ["true", "on", "1"]
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    FROM_EMAIL = os.environ.get("FROM_EMAIL") or os.environ.get("MAIL_USERNAME")
    FROM_NAME = os.environ.get("FROM_NAME", "Prediction League")

    TIMEZONE = os.environ.get("TIMEZONE", "UTC")  # Default to UTC if not specified

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(
        os.environ.get("CACHE_DEFAULT_TIMEOUT", 300)
    )  # 5 minutes
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "prediction_league:"

    # In-process scheduler (external cron is the primary invoker)
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "False").lower() == "true"

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    SLOW_FUNCTION_THRESHOLD = float(os.environ.get("SLOW_FUNCTION_THRESHOLD", "1.0"))

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't available in development
        try:
            import redis

            redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
            redis_client.ping()
        except redis.exceptions.RedisError:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "Redis not available, falling back to SimpleCache for development.",
                UserWarning,
            )


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "PRODUCTION WARNING: SECRET_KEY not explicitly set!",
                UserWarning,
            )
        if not os.environ.get("CRON_SECRET"):
            warnings.warn(
                "PRODUCTION WARNING: CRON_SECRET not set, cron endpoints will refuse all calls!",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CACHE_TYPE = "SimpleCache"
    CRON_SECRET = "test-cron-secret"
    APP_URL = "http://testserver"
    CRON_ALERTS_ENABLED = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False
    RATELIMIT_ENABLED = False

    def __init__(self):
        # Keep the in-memory database regardless of DATABASE_URL
        pass


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
