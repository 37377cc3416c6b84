# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/repledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (SQL data store only; idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Insert the demo products and customers (existing ids are left alone).
#
# Inspection:
# - python -m flask stats financial
#   Print cash on hand, HQ transfers, collections, expenses and net sales.
# - python -m flask ledger events --type stock.product_missing --limit 20
#   Print recent reconciliation events.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .repository import SqlRepository, get_repository
from .services.catalog_service import seed_demo_data
from .services.financial_service import get_financial_stats
from .services.ledger_service import list_ledger_events


def _cents(value: int) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}{abs(value) // 100:,}.{abs(value) % 100:02d}"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the SQL data store."""
    if not isinstance(get_repository(), SqlRepository):
        click.echo("SKIP  Memory data store has no schema.")
        return
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not isinstance(get_repository(), SqlRepository):
        click.echo("SKIP  Memory data store has no schema.")
        return
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for demo data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Insert the demo catalog."""
    created = seed_demo_data(get_repository())
    click.echo(f"PASS Seeded {created['products']} product(s) and {created['customers']} customer(s).")


@click.group('stats')
def stats_group():
    """Financial statistics."""


@stats_group.command('financial')
@click.option('--json', 'as_json', is_flag=True, help='Print raw JSON (cents)')
@with_appcontext
def financial(as_json):
    """Print the financial summary."""
    stats = get_financial_stats(get_repository())
    if as_json:
        click.echo(json.dumps(stats.to_dict(), indent=2))
        return

    click.echo("\n" + "="*44)
    for label, value in (
        ("Rep cash on hand", stats.rep_cash_on_hand_cents),
        ("Transferred to HQ", stats.transferred_to_hq_cents),
        ("Total collected", stats.total_collected_cents),
        ("Total expenses", stats.total_expenses_cents),
        ("Total sales", stats.total_sales_cents),
        ("Outstanding", stats.outstanding_cents),
    ):
        click.echo(f"{label:<24} {_cents(value):>18}")
    click.echo("="*44)


@click.group('ledger')
def ledger_group():
    """Reconciliation event inspection."""


@ledger_group.command('events')
@click.option('--type', 'event_type', help='Filter by event type (e.g. stock.adjusted)')
@click.option('--entity-id', help='Filter by product/order/transaction id')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def events(event_type, entity_id, limit):
    """List the most recent ledger events."""
    rows = list_ledger_events(get_repository(), event_type=event_type, entity_id=entity_id, limit=limit)
    if not rows:
        click.echo("No events found.")
        return

    for event in rows:
        occurred = event.to_dict()["occurred_at"]
        click.echo(f"{occurred}  {event.event_type:<22} {event.entity_type:<12} {event.entity_id}  {json.dumps(event.payload)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stats_group)
    app.cli.add_command(ledger_group)
