# Overview: Flask CLI command groups for bootstrap, tenant setup, and settlement reports.

# backend/shopsettle/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
# - python -m flask orgs create --name "Northside Auto" --code "NORTH"
# - python -m flask orgs configure --org-id 1 --profit-basis --numbering shared --alias jr_mech=apprentice
#
# Staff and rates:
# - python -m flask staff create --org-id 1 --username mike --role "Master Tech"
# - python -m flask staff list --org-id 1
# - python -m flask staff set-rate --org-id 1 --role mechanic --rate 0.10
#
# Settlement:
# - python -m flask settle report --org-id 1
# - python -m flask settle weekly --org-id 1 --weeks 4

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import SettlementError
from .models import Organization
from .money import format_currency
from .services import commission_rates, settlement_service, staff_service
from .services.tenant_service import TenantAccessError, update_tenant_settings


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


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
    click.echo("PASS Database reset complete")


# =============================================================================
# ORGANIZATION MANAGEMENT COMMANDS (MULTI-TENANT)
# =============================================================================

@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations with their settlement settings."""
    orgs = db.session.query(Organization).order_by(Organization.id).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<28} {'Code':<10} {'Active':<7} {'Basis':<8} {'Numbering':<10} {'Loyalty'}")
    click.echo("="*80)

    for org in orgs:
        active_str = "Yes" if org.is_active else "No"
        basis = "profit" if org.use_profit_basis else "revenue"
        loyalty = "on" if org.loyalty_enabled else "off"
        click.echo(
            f"{org.id:<5} {org.name:<28} {org.code or '-':<10} {active_str:<7} "
            f"{basis:<8} {org.invoice_numbering:<10} {loyalty}"
        )

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--currency', default='USD', help='ISO currency code')
@with_appcontext
def create_org_cli(name, code, currency):
    """Create a new organization (tenant)."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        return

    org = Organization(name=name, code=code, currency_code=currency.upper(), is_active=True)
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


@orgs_group.command('configure')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--profit-basis/--revenue-basis', default=None, help='Commission basis')
@click.option('--numbering', type=click.Choice(['shared', 'separate']), help='Invoice numbering mode')
@click.option('--loyalty/--no-loyalty', default=None, help='Enable loyalty stamps')
@click.option('--webhook-url', help='Sales webhook URL ("" to clear)')
@click.option('--weeks', type=int, help='Weeks shown in the weekly report')
@click.option('--alias', 'aliases', multiple=True, help='Role alias as alias=role (repeatable)')
@with_appcontext
def configure_org_cli(org_id, profit_basis, numbering, loyalty, webhook_url, weeks, aliases):
    """Update an organization's settlement settings."""
    data = {}
    if profit_basis is not None:
        data['use_profit_basis'] = profit_basis
    if numbering:
        data['invoice_numbering'] = numbering
    if loyalty is not None:
        data['loyalty_enabled'] = loyalty
    if webhook_url is not None:
        data['sales_webhook_url'] = webhook_url or None
    if weeks is not None:
        data['report_weeks'] = weeks
    if aliases:
        table = {}
        for pair in aliases:
            alias, sep, role = pair.partition('=')
            if not sep:
                click.echo(f"FAIL Alias '{pair}' must look like alias=role")
                return
            table[alias.strip()] = role.strip()
        data['role_aliases'] = table

    if not data:
        click.echo("Nothing to update.")
        return

    try:
        org = update_tenant_settings(org_id, data)
    except (SettlementError, TenantAccessError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Updated organization {org.name} (ID: {org.id})")


# =============================================================================
# STAFF COMMANDS
# =============================================================================

@click.group('staff')
def staff_group():
    """Employee and commission rate commands."""


@staff_group.command('create')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--username', required=True, help='Username (unique within org)')
@click.option('--role', required=True, help='Role name or tenant alias')
@click.option('--full-name', help='Display name')
@with_appcontext
def create_employee_cli(org_id, username, role, full_name):
    """Create an employee."""
    try:
        employee = staff_service.create_employee(org_id, username=username, role=role, full_name=full_name)
    except (SettlementError, TenantAccessError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created employee: {employee.username} (ID: {employee.id}, Role: {employee.role})")


@staff_group.command('list')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--all', 'show_all', is_flag=True, help='Include inactive employees')
@with_appcontext
def list_employees_cli(org_id, show_all):
    """List employees of an organization."""
    employees = staff_service.list_employees(org_id, active_only=not show_all)
    if not employees:
        click.echo("No employees found.")
        return

    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<15} {'Active'}")
    for employee in employees:
        click.echo(
            f"{employee.id:<5} {employee.username:<20} {employee.full_name or '-':<25} "
            f"{employee.role:<15} {'Yes' if employee.is_active else 'No'}"
        )


@staff_group.command('set-rate')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--role', required=True, help='Role name or tenant alias')
@click.option('--rate', required=True, help='Commission rate as a fraction (0.10 = 10%)')
@with_appcontext
def set_rate_cli(org_id, role, rate):
    """Set the commission rate for a role."""
    try:
        row = commission_rates.upsert_rate(org_id, role, rate)
    except (SettlementError, TenantAccessError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS {row.role} commission rate set to {row.rate_bps / 100:.2f}%")


# =============================================================================
# SETTLEMENT COMMANDS
# =============================================================================

@click.group('settle')
def settle_group():
    """Settlement reports."""


@settle_group.command('report')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def settlement_report_cli(org_id):
    """All-time sales and commission per employee."""
    try:
        report = settlement_service.settlement_report(org_id)
    except (SettlementError, TenantAccessError) as e:
        click.echo(f"FAIL {e}")
        return

    currency = report["currency"]
    click.echo(f"{'Employee':<25} {'Role':<15} {'Sales':>14} {'Commission':>14}")
    for row in report["rows"]:
        click.echo(
            f"{row['display_name']:<25} {row['role']:<15} "
            f"{format_currency(row['total_sales_cents'], currency):>14} "
            f"{format_currency(row['commission_total_cents'], currency):>14}"
        )
    click.echo(
        f"{'TOTAL':<41} {format_currency(report['grand_total_sales_cents'], currency):>14} "
        f"{format_currency(report['grand_total_commission_cents'], currency):>14}"
    )


@settle_group.command('weekly')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--weeks', type=int, help='Number of weeks (defaults to the tenant setting)')
@with_appcontext
def weekly_report_cli(org_id, weeks):
    """Per-week sales and commission, newest week last."""
    try:
        report = settlement_service.weekly_report(org_id, weeks=weeks)
    except (SettlementError, TenantAccessError) as e:
        click.echo(f"FAIL {e}")
        return

    currency = report["currency"]
    for bucket in report["buckets"]:
        click.echo(f"\n{bucket['week_label']}")
        if not bucket["rows"]:
            click.echo("  (no sales)")
            continue
        for row in bucket["rows"]:
            click.echo(
                f"  {row['display_name']:<25} "
                f"sales {format_currency(row['total_sales_cents'], currency):>12}  "
                f"commission {format_currency(row['commission_total_cents'], currency):>12}  "
                f"net {format_currency(row['net_cents'], currency):>12}"
            )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(staff_group)
    app.cli.add_command(settle_group)
