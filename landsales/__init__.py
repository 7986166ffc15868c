import os
import logging

import click
from flask import Flask

from landsales.config import config_by_name
from landsales.extensions import db, migrate


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from landsales import models  # noqa: F401

    # --- CLI commands ---
    register_cli(app)

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("sweep-leads")
    @click.option("--dry-run", is_flag=True, help="Count overdue leads without expiring them.")
    def sweep_leads(dry_run):
        """Expire every open lead whose 7-day window has passed.

        Meant for cron; running it twice in a row expires nothing the
        second time.

        Usage:
            flask sweep-leads
            flask sweep-leads --dry-run
        """
        from landsales.services import lead_service, pipeline_service

        if dry_run:
            count = lead_service.count_expirable()
            click.echo(f"[dry-run] {count} lead(s) would be expired.")
            return

        count = pipeline_service.sweep_expired_leads()
        click.echo(f"Expired {count} lead(s).")

    @app.cli.command("pending-installments")
    @click.argument("reservation_id")
    def show_pending_installments(reservation_id):
        """List the installments of a reservation not yet covered.

        Usage:
            flask pending-installments <reservation-id>
        """
        from landsales.errors import NotFoundError
        from landsales.services.installment_service import pending_installments

        try:
            pending = pending_installments(reservation_id)
        except NotFoundError as e:
            raise click.ClickException(str(e))

        if not pending:
            click.echo("No pending installments.")
            return
        for item in pending:
            click.echo(
                f"  #{item.payment.installment_number:>3}  "
                f"{item.payment.due_date:%Y-%m-%d}  {item.amount_pending}"
            )
