"""
AssetVerse — corporate asset management backend.
Flask Application Factory.

Usage:
    from assetverse import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from assetverse.config import config
from assetverse.core.exceptions import AssetVerseError
from assetverse.middleware.error_handlers import init_error_handlers
from assetverse.middleware.logging_config import configure_logging
from assetverse.middleware.rate_limiter import init_rate_limits
from assetverse.middleware.timing import init_request_timing
from assetverse.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    load_dotenv()
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "")
    CORS(
        app,
        origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
        supports_credentials=True,
    )

    # ── Request timing + error rendering ─────────────────────────────────
    init_request_timing(app)
    init_error_handlers(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Import all models so create_all / Alembic can detect them ────────
    from assetverse.models import account as _account_models          # noqa: F401
    from assetverse.models import asset as _asset_models              # noqa: F401
    from assetverse.models import asset_request as _request_models    # noqa: F401
    from assetverse.models import assignment as _assignment_models    # noqa: F401
    from assetverse.models import affiliation as _affiliation_models  # noqa: F401
    from assetverse.models import package as _package_models          # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if not app.config.get("TESTING"):
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()
            app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from assetverse.blueprints.users_bp import users_bp
    from assetverse.blueprints.assets_bp import assets_bp
    from assetverse.blueprints.requests_bp import requests_bp
    from assetverse.blueprints.roster_bp import roster_bp
    from assetverse.blueprints.payments_bp import payments_bp
    from assetverse.blueprints.health_bp import health_bp

    app.register_blueprint(users_bp)
    app.register_blueprint(assets_bp)
    app.register_blueprint(requests_bp)
    app.register_blueprint(roster_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(health_bp)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    _register_cli(app)

    @app.route("/")
    def index():
        return {"status": "ok", "app": "AssetVerse"}

    return app


def _register_cli(app):
    """Operator commands: catalog seeding and workflow compensations."""

    @app.cli.command("seed-packages")
    def seed_packages_cmd():
        """Insert the Basic / Standard / Premium packages if missing."""
        from assetverse.services.package_service import seed_default_packages
        count = seed_default_packages()
        click.echo(f"Seeded {count} new packages.")

    @app.cli.command("revert-approval")
    @click.argument("request_id", type=int)
    @click.option("--operator", default="operator", help="Recorded as processed_by on the request.")
    def revert_approval_cmd(request_id, operator):
        """Undo an approved request and mark it rejected."""
        from assetverse.services.workflow_service import revert_approval
        try:
            result = revert_approval(request_id, operator=operator)
        except AssetVerseError as exc:
            raise click.ClickException(f"{exc.code}: {exc.message}")
        click.echo(f"Reverted request {request_id}: {result}")

    @app.cli.command("revert-assignment")
    @click.argument("assignment_id", type=int)
    def revert_assignment_cmd(assignment_id):
        """Undo a direct assignment: affiliation, stock and seat."""
        from assetverse.services.workflow_service import revert_direct_assignment
        try:
            result = revert_direct_assignment(assignment_id)
        except AssetVerseError as exc:
            raise click.ClickException(f"{exc.code}: {exc.message}")
        click.echo(f"Reverted assignment {assignment_id}: {result}")

    @app.cli.command("issue-dev-token")
    @click.argument("email")
    def issue_dev_token_cmd(email):
        """Print an HS256 identity token (IDENTITY_VERIFY_MODE=hs256 only)."""
        from assetverse.services.identity_service import issue_dev_token
        try:
            click.echo(issue_dev_token(email))
        except RuntimeError as exc:
            raise click.ClickException(str(exc))
