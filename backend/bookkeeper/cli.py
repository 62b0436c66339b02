# Overview: Flask CLI command groups for bootstrap, inspection, and reconciliation follow-up.

# backend/bookkeeper/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Businesses:
# - python -m flask businesses list
# - python -m flask businesses create --name "Corner Shop" --currency NGN
#
# Reconciliation:
# - python -m flask reconcile issues [--business-id 1] [--all]
#   List conversions that created a transaction but could not mark the bank record.
# - python -m flask reconcile resolve 3 --note "Linked manually"

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Transaction
from .services import business_service, reconciliation_service


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database schema ready")


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
    click.echo("PASS Database reset")


# =============================================================================
# BUSINESSES
# =============================================================================

@click.group('businesses')
def businesses_group():
    """Business (tenant) management commands."""


@businesses_group.command('list')
@with_appcontext
def list_businesses_cli():
    """List all businesses."""
    businesses = business_service.list_businesses()
    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*64)
    click.echo(f"{'ID':<5} {'Name':<36} {'Currency':<10} {'Txns'}")
    click.echo("="*64)
    for business in businesses:
        txn_count = db.session.query(Transaction).filter_by(business_id=business.id).count()
        click.echo(f"{business.id:<5} {business.name:<36} {business.preferred_currency:<10} {txn_count}")
    click.echo("="*64 + "\n")


@businesses_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--currency', default='USD', show_default=True, help='Preferred currency code')
@with_appcontext
def create_business_cli(name, currency):
    """Create a business."""
    try:
        business = business_service.create_business({"name": name, "preferred_currency": currency})
    except LedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created business: {business.name} (ID: {business.id})")


# =============================================================================
# RECONCILIATION
# =============================================================================

@click.group('reconcile')
def reconcile_group():
    """Bank reconciliation follow-up commands."""


@reconcile_group.command('issues')
@click.option('--business-id', type=int, default=None, help='Only this business')
@click.option('--all', 'include_resolved', is_flag=True, help='Include resolved issues')
@with_appcontext
def list_issues_cli(business_id, include_resolved):
    """List reconciliation issues (open ones by default)."""
    issues = reconciliation_service.list_issues(business_id, include_resolved=include_resolved)
    if not issues:
        click.echo("No reconciliation issues.")
        return

    for issue in issues:
        state = "resolved" if issue.resolved_at else "OPEN"
        click.echo(
            f"#{issue.id} [{state}] business={issue.business_id} bank_record={issue.bank_record_id} "
            f"transaction={issue.transaction_id or '-'} {issue.kind}"
        )
        if issue.detail:
            click.echo(f"    {issue.detail}")


@reconcile_group.command('resolve')
@click.argument('issue_id', type=int)
@click.option('--note', required=True, help='What was done to fix it')
@with_appcontext
def resolve_issue_cli(issue_id, note):
    """Mark a reconciliation issue as resolved."""
    try:
        issue = reconciliation_service.resolve_issue(issue_id, note)
    except LedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Resolved issue #{issue.id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(reconcile_group)
