# backend/bankportal/__init__.py
from flask import Flask, request, jsonify, g
from werkzeug.exceptions import HTTPException

from .config import Config, engine_options_for
from .extensions import db, migrate


MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
}


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Fresh dict per app: Flask-SQLAlchemy adds driver defaults in place
    if not test_config or "SQLALCHEMY_ENGINE_OPTIONS" not in test_config:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options_for(
            app.config["SQLALCHEMY_DATABASE_URI"],
            app.config["DB_TIMEOUT_SECONDS"],
        )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.payments import payments_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(payments_bp)

    _register_request_hooks(app)
    _register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _register_request_hooks(app: Flask) -> None:
    from .services import rate_limit_service, security_service

    @app.before_request
    def log_request():
        app.logger.info("%s %s", request.method, request.path)

    @app.before_request
    def enforce_rate_limit():
        if not app.config.get("RATELIMIT_ENABLED", True):
            return None
        if request.method not in MUTATING_METHODS or not request.path.startswith("/api/"):
            return None

        try:
            result = rate_limit_service.hit(request.remote_addr or "unknown")
        except Exception:
            app.logger.exception("Rate limiter unavailable")
            return jsonify({"error": "Internal server error"}), 500

        g.rate_limit = result
        if result.allowed:
            return None

        app.logger.warning("Rate limit exceeded for %s on %s", request.remote_addr, request.path)
        try:
            security_service.log_security_event(
                user_id=None,
                event_type="RATE_LIMITED",
                success=False,
                reason=f"Over {result.limit} requests in window",
            )
        except Exception:
            app.logger.exception("Failed to record rate limit event")

        response = jsonify({"error": "Too many requests, please try again later."})
        response.status_code = 429
        response.headers["Retry-After"] = str(result.reset_seconds)
        return response

    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)

        rate_limit = g.get("rate_limit")
        if rate_limit is not None:
            response.headers.update(rate_limit.headers())

        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,OPTIONS"
        return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        response = jsonify({"error": error.description or error.name})
        response.status_code = error.code or 500
        return response

    @app.errorhandler(Exception)
    def handle_unexpected_exception(error: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return jsonify({"error": "Internal Server Error"}), 500
