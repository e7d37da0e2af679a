# Overview: Flask CLI command groups for bootstrap, inspection, and ledger checks.

# backend/tradebook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Item inspection:
# - python -m flask items list [--search "rice"] [--all]
#   List items with stock, prices and stock status.
# - python -m flask items low-stock
#   List active items at or below their reorder level.
#
# Ledger checks:
# - python -m flask ledger reconcile [--item-id 1]
#   Verify current_stock == opening_stock + SUM(ledger deltas). Exits 1 on drift.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import item_service, ledger_service


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet. Safe to run repeatedly."""
    click.echo("BUILD  Creating missing tables...")
    db.create_all()
    click.echo("PASS Database ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('items')
def items_group():
    """Item inspection commands."""


@items_group.command('list')
@click.option('--search', default=None, help='Match name, SKU or barcode')
@click.option('--all', 'show_all', is_flag=True, help='Show inactive items too')
@with_appcontext
def list_items_cli(search, show_all):
    """
    List items.

    Example:
        flask items list
        flask items list --search rice --all
    """
    items = item_service.list_items(search=search, include_inactive=show_all)

    if not items:
        click.echo("No items found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'SKU':<15} {'Name':<30} {'Stock':>8} {'Cost':>12} {'Price':>12} {'Status':<9} {'Active'}")
    click.echo("="*100)

    for item in items:
        active_str = "Yes" if item.is_active else "No"
        click.echo(
            f"{item.id:<5} {item.sku:<15} {item.name[:30]:<30} {item.current_stock:>8} "
            f"{_money(item.cost_price_cents):>12} {_money(item.selling_price_cents):>12} "
            f"{item.stock_status:<9} {active_str}"
        )

    click.echo("="*100 + "\n")


@items_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List active items at or below their reorder level."""
    rows = item_service.list_low_stock_items()

    if not rows:
        click.echo("PASS No items at or below reorder level.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'SKU':<15} {'Name':<30} {'Stock':>7} {'Reorder':>8} {'Status'}")
    click.echo("="*80)
    for row in rows:
        click.echo(
            f"{row['id']:<5} {row['sku']:<15} {row['name'][:30]:<30} "
            f"{row['current_stock']:>7} {row['reorder_level']:>8} {row['stock_status']}"
        )
    click.echo("="*80 + "\n")


@click.group('ledger')
def ledger_group():
    """Stock ledger checks."""


@ledger_group.command('reconcile')
@click.option('--item-id', type=int, default=None, help='Check a single item')
@with_appcontext
def reconcile_cli(item_id):
    """
    Compare each item's stored stock with opening stock plus ledger deltas.

    Exits with status 1 if any item has drifted.
    """
    if item_id is not None:
        results = [ledger_service.reconcile_item(item_id)]
    else:
        results = ledger_service.reconcile_all()

    drifted = [r for r in results if not r["balanced"]]
    for r in drifted:
        click.echo(
            f"FAIL item {r['item_id']} ({r['sku']}): stored {r['current_stock']}, "
            f"expected {r['expected_stock']} (opening {r['opening_stock']} + ledger {r['ledger_sum']})"
        )

    click.echo(f"Checked {len(results)} item(s), {len(drifted)} out of balance.")
    if drifted:
        raise SystemExit(1)
    click.echo("PASS Ledger reconciles.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(items_group)
    app.cli.add_command(ledger_group)
