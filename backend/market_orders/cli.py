# Overview: Flask CLI command groups for bootstrap, staff users and ledger checks.

# backend/market_orders/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and, on an empty database, a default admin (PIN 1234) and employee (PIN 5678).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Staff users:
# - python -m flask users list
# - python -m flask users create --name "Kasiyer" --role EMPLOYEE --pin 4321
# - python -m flask users set-pin <user id> --pin 4321
#
# Markets:
# - python -m flask markets verify-ledger
#   Compare every market's stored balance with the sum of its ledger; exits 1 on mismatch.

import click
from flask.cli import with_appcontext

from .errors import OrderingError
from .extensions import db
from .models import User
from .services import auth_service, ledger_service


DEFAULT_USERS = [
    ("Admin", "ADMIN", "1234"),
    ("Employee", "EMPLOYEE", "5678"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create the schema and seed default staff on an empty database.

    SECURITY: Change the default PINs immediately in production!
    """
    click.echo("START Initializing market orders backend...")

    db.create_all()
    click.echo("PASS Tables created")

    if db.session.query(User).count():
        click.echo("WARN  Users already exist, skipping default users")
        return

    for name, role, pin in DEFAULT_USERS:
        try:
            user = auth_service.create_user(name=name, role=role, pin=pin)
            click.echo(f"PASS Created user: {user.name} ({user.role}) id={user.id}")
        except OrderingError as e:
            click.echo(f"FAIL Failed to create user '{name}': {e.message}")

    click.echo("\nDefault PINs (CHANGE IN PRODUCTION!):")
    for name, role, pin in DEFAULT_USERS:
        click.echo(f"   {role:<9} -> {pin}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed users.")


@click.group('users')
def users_group():
    """Staff user inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--role', type=click.Choice(['ADMIN', 'EMPLOYEE'], case_sensitive=False), prompt=True, help='Role')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='4-digit PIN')
@with_appcontext
def create_user_cli(name, role, pin):
    """Create an administrator or employee. PINs must be unique across staff."""
    try:
        user = auth_service.create_user(name=name, role=role, pin=pin)
    except OrderingError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.name} ({user.role}) id={user.id}")


@users_group.command('set-pin')
@click.argument('user_id')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='New 4-digit PIN')
@with_appcontext
def set_pin_cli(user_id, pin):
    try:
        user = auth_service.set_user_pin(user_id, pin)
    except OrderingError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS PIN updated for {user.name}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all staff users."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<38} {'Name':<25} {'Role'}")
    click.echo("="*80)

    for user in users:
        click.echo(f"{user.id:<38} {user.name:<25} {user.role}")

    click.echo("="*80 + "\n")


@click.group('markets')
def markets_group():
    """Market account maintenance commands."""


@markets_group.command('verify-ledger')
@with_appcontext
def verify_ledger():
    """Check balance_due == sum(ledger) for every market."""
    mismatches = ledger_service.find_balance_mismatches()

    if not mismatches:
        click.echo("PASS All market balances match their ledgers")
        return

    for row in mismatches:
        click.echo(
            f"FAIL {row['name']} ({row['marketId']}): "
            f"balanceDue={row['balanceDue']} ledgerSum={row['ledgerSum']}"
        )
    raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(markets_group)
