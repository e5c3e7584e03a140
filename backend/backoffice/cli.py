# Overview: Flask CLI command groups for invoice maintenance and sequence inspection.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Invoices:
# - python -m flask invoices mark-overdue
#   Persist Overdue on every Pending invoice whose due date has passed.
#
# Sequences:
# - python -m flask sequences show [--series invoice]
#   List counters with their last issued value.

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import select

from .extensions import db
from .models import Counter
from .services.invoice_service import InvoiceLifecycle


@click.group('invoices')
def invoices_group():
    """Invoice maintenance commands."""


@invoices_group.command('mark-overdue')
@with_appcontext
def mark_overdue_cli():
    """
    Flip Pending invoices past their due date to Overdue.

    Reads already report Overdue without this; the sweep makes the stored
    status match so filters and reports on the column agree.
    """
    lifecycle = InvoiceLifecycle(db.session, clock=current_app.config["CLOCK"])
    try:
        updated = lifecycle.mark_overdue_invoices()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    click.echo(f"Marked {updated} invoice(s) Overdue.")


@click.group('sequences')
def sequences_group():
    """Sequence counter inspection."""


@sequences_group.command('show')
@click.option('--series', default=None, help='Only show this series')
@with_appcontext
def show_sequences_cli(series):
    """List (series, period) counters and their last issued value."""
    stmt = select(Counter).order_by(Counter.series, Counter.period)
    if series:
        stmt = stmt.where(Counter.series == series)
    counters = db.session.execute(stmt).scalars().all()

    if not counters:
        click.echo("No counters found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'Series':<20} {'Period':<10} {'Value':<10} {'Updated'}")
    click.echo("="*60)
    for counter in counters:
        period = counter.period or "-"
        updated = counter.updated_at.strftime('%Y-%m-%d %H:%M') if counter.updated_at else "-"
        click.echo(f"{counter.series:<20} {period!s:<10} {counter.value:<10} {updated}")
    click.echo("="*60 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(invoices_group)
    app.cli.add_command(sequences_group)
