# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/kitchen/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Chef" --email chef@kitchen.local --password "Password123!" --role admin
#
# Fixed costs:
# - python -m flask fixed-costs set --rent 1500 --taxes 300 --utilities 200 --marketing 100 --accounting 150 --expected-monthly-sales 4000
#   Create or update the fixed costs row (omitted options keep their value).

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .models import User
from .services.auth_service import create_user
from .services import fixed_costs_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables."""
    click.echo("START Initializing kitchen database...")
    db.create_all()
    click.echo("PASS Tables ready.")
    if db.session.query(User.id).first() is None:
        click.echo("The first user to register through /api/auth/register becomes admin,")
        click.echo("or run 'python -m flask users create --role admin'.")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'editor', 'user']), default='user', show_default=True)
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a user.

    Password must meet strength requirements: 8+ chars, uppercase,
    lowercase, digit and special character.
    """
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except DomainError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<30} {active_str:<8} {user.role}")
    click.echo("="*80 + "\n")


@click.group('fixed-costs')
def fixed_costs_group():
    """Monthly overhead used by pricing."""


@fixed_costs_group.command('set')
@click.option('--rent', type=str)
@click.option('--taxes', type=str)
@click.option('--utilities', type=str)
@click.option('--marketing', type=str)
@click.option('--accounting', type=str)
@click.option('--expected-monthly-sales', type=int)
@with_appcontext
def set_fixed_costs(**values):
    """Create or update fixed costs. Does not reprice existing pricings."""
    payload = {k: v for k, v in values.items() if v is not None}
    try:
        fixed = fixed_costs_service.save_fixed_costs(payload)
    except DomainError as e:
        raise click.ClickException(e.message)

    click.echo(
        f"PASS Fixed costs total {fixed.total} over {fixed.expected_monthly_sales} expected monthly sales"
    )
    click.echo("Run POST /api/pricing/recalculate to reprice existing pricings.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(fixed_costs_group)
