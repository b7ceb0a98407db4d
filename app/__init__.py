import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
cache = Cache()
migrate = Migrate()

# Path prefixes that always answer with JSON errors
JSON_PATH_PREFIXES = ("/api/", "/cron/")


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies like Traefik.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    # We want the leftmost (original client) IP
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Use Redis in production for shared rate limiting across multiple workers
limiter_storage_uri = "memory://"
redis_url = os.environ.get("REDIS_URL") or os.environ.get("CACHE_REDIS_URL")
if redis_url:
    try:
        import redis

        redis_client = redis.Redis.from_url(redis_url)
        redis_client.ping()
        limiter_storage_uri = redis_url
        print(f"Rate limiter using Redis storage at {redis_url}")
    except redis.exceptions.RedisError as e:
        print(f"Redis not available for rate limiter, using memory storage: {e}")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Import and register blueprints
    from app.routes.cron import bp as cron_bp

    app.register_blueprint(cron_bp, url_prefix="/cron")

    from app.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Cron callers authenticate with a shared secret; never throttle them
    limiter.exempt(cron_bp)

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from app.utils.logging_config import setup_logging

    setup_logging(app)

    # Show configuration warnings
    show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Optional in-process invoker for the cron jobs
    if not app.config.get("TESTING", False):
        from app.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    logger.info(f"Prediction league starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not app.config.get("CRON_SECRET"):
        logger.warning("CRON_SECRET is not configured; cron endpoints will reject calls")

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info(
            "Using SQLite database ("
            + ("in-memory" if "memory" in db_url else "app.db file")
            + ")"
        )
    elif "postgresql" in db_url:
        logger.info("Using PostgreSQL database")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )


def _wants_json():
    return request.path.startswith(JSON_PATH_PREFIXES)


def register_error_handlers(app):
    """Register global error handlers"""

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(404)
    def not_found_error(error):
        if _wants_json():
            return jsonify({"error": "Resource not found"}), 404
        return "Not found", 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        if _wants_json():
            return jsonify({"error": "Method not allowed"}), 405
        return "Method not allowed", 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        if _wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return "Internal server error", 500

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        if _wants_json():
            return jsonify({"error": "Bad request"}), 400
        return "Bad request", 400

    @app.errorhandler(429)
    def too_many_requests_error(error):
        if _wants_json():
            return jsonify({"error": "Too many requests"}), 429
        return "Too many requests", 429


from app import models  # noqa: F401, E402 - imported for model registration
