import logging
import os
import sys
from datetime import datetime

# Alembic
from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from flask import Flask, redirect, render_template, url_for
from flask_login import current_user
from logtail import LogtailHandler

from models import db

# Blueprints
from modules.auth.routes import auth_bp, login_manager
from modules.auth.oauth import init_oauth
from modules.auth.session_context import current_session, init_session_context
from modules.assessment import bp as assessment_bp
from modules.journey.routes import journey_bp
from modules.billing.routes import billing_bp
from modules.admin.routes import admin_bp

load_dotenv()

# env var -> app.config key; read once in create_app
ENV_CONFIG_KEYS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL_FAST",
    "STRIPE_SECRET_KEY",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GITHUB_CLIENT_ID",
    "GITHUB_CLIENT_SECRET",
    "ADMIN_EMAILS",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASSWORD",
    "SMTP_FROM",
)


def _is_production() -> bool:
    return os.getenv("FLASK_ENV") == "production" or os.getenv("ENV") == "production"


# -------------------- Auto Alembic ---------------------
def run_auto_migrations(app: Flask) -> None:
    if not app.config.get("AUTO_MIGRATE"):
        return

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if db_url.startswith("sqlite"):
        app.logger.info("AUTO_MIGRATE skipped (SQLite dev).")
        return

    cfg = Config(os.path.join(app.root_path, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(app.root_path, "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)

    try:
        with app.app_context():
            command.upgrade(cfg, "head")
        app.logger.info("Alembic migrations applied (upgrade head).")
    except Exception as e:
        # app still boots; the next deploy retries
        app.logger.error(f"Alembic upgrade failed: {e}")


# -------------------- App factory ----------------------
def create_app(config=None):
    app = Flask(__name__, template_folder="templates", static_folder="static")

    # Logging
    handlers = [logging.StreamHandler(sys.stdout)]
    token = os.getenv("LOGTAIL_TOKEN")
    if token:
        handlers.append(LogtailHandler(source_token=token))
    logging.basicConfig(level=logging.INFO, handlers=handlers)
    app.logger.handlers = handlers
    app.logger.setLevel(logging.INFO)

    # Core config
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY") or os.getenv("FLASK_SECRET_KEY") or "dev-secret-key"

    db_url = os.getenv("DATABASE_URL") or "sqlite:///mentorai.db"
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    app.config["SQLALCHEMY_DATABASE_URI"] = db_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    app.config["MOCK"] = os.getenv("MOCK", "0") == "1"
    app.config["AUTO_MIGRATE"] = os.getenv("AUTO_MIGRATE", "1") == "1"
    for key in ENV_CONFIG_KEYS:
        value = os.getenv(key)
        if value is not None:
            app.config[key] = value

    if not _is_production():
        app.config["TEMPLATES_AUTO_RELOAD"] = True

    if _is_production():
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_SAMESITE="Lax",
            REMEMBER_COOKIE_SECURE=True,
        )
        from werkzeug.middleware.proxy_fix import ProxyFix

        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    # overrides (tests, scripts) win over the environment
    if config:
        app.config.update(config)

    # Extensions
    db.init_app(app)
    login_manager.init_app(app)
    init_oauth(app)
    init_session_context(app)

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(assessment_bp)
    app.register_blueprint(journey_bp)
    app.register_blueprint(billing_bp, url_prefix="/subscription")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    # Routes
    @app.route("/", endpoint="landing")
    def landing():
        if getattr(current_user, "is_authenticated", False):
            return redirect(url_for("journey.dashboard"))
        return render_template("landing.html")

    # -------------------- Context for all templates --------------------
    @app.context_processor
    def inject_globals():
        ctx = current_session()
        return dict(
            now=datetime.utcnow(),
            session_ctx=ctx,
            nav_is_admin=ctx.is_admin,
        )

    @app.errorhandler(403)
    def forbidden(e):
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def not_found(e):
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def srv_error(e):
        app.logger.exception("Unhandled 500 error")
        db.session.rollback()
        return render_template("errors/500.html"), 500

    @app.teardown_request
    def _teardown_request(exc):
        if exc:
            db.session.rollback()

    # Dev sqlite quickstart
    with app.app_context():
        is_sqlite = str(app.config["SQLALCHEMY_DATABASE_URI"]).startswith("sqlite")
        if is_sqlite and not _is_production():
            db.create_all()

    run_auto_migrations(app)
    return app
