import logging

from flask import Flask, g, render_template, request
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect

from app.portal.config import check_cache_backend, load_config
from app.portal.cache import cache
from app.portal.db import init_db, teardown_db_session
from app.portal.guard import init_route_guard
from app.portal.session import codec_from_config
from app.portal.routes import bp as routes_bp
from app.portal.auth import bp as auth_bp, assign_request_id
from app.portal.api import bp as api_bp
from app.portal.modules.registry.admin import bp as registry_bp
from app.portal.modules.coordinator.admin import bp as coordinator_bp
from app.portal.modules.lecturer.admin import bp as lecturer_bp

REQUIRED_TABLES = ("users", "centers", "departments", "claims", "supervised_students", "audit_events")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())

    # CSRF protection (minimal)
    from app.portal.security import csrf_exempt, ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_session() -> dict:
        return {"current_session": getattr(g, "user_session", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        check_cache_backend(app.config)

    init_db(app)
    cache.init_app(app)

    app.before_request(assign_request_id)
    init_route_guard(app, codec_from_config(app.config))

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz", "/api/")):
            return None
        ensure_csrf_token()
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if csrf_exempt(request):
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(registry_bp, url_prefix="/registry")
    app.register_blueprint(coordinator_bp, url_prefix="/coordinator")
    app.register_blueprint(lecturer_bp, url_prefix="/lecturer")

    app.teardown_appcontext(teardown_db_session)

    # Schema health: log once if migrations have not been applied.
    try:
        insp = sa_inspect(app.extensions["sqlalchemy_engine"])
        missing = [t for t in REQUIRED_TABLES if not insp.has_table(t)]
    except Exception:
        app.logger.exception("Schema health check failed")
        missing = []
    if missing:
        app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing tables: %s", ", ".join(missing))

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return render_template("errors/400.html", message="Request too large."), 413

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
