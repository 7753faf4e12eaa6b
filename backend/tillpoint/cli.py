# Overview: Flask CLI command groups for bootstrap, users, and maintenance.

# backend/tillpoint/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to tillpoint (PowerShell: $env:FLASK_APP="tillpoint").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create-admin --username admin --password "Password123!"
#   Create an admin account (prompts if options are omitted).
# - python -m flask users list
#   List all users with roles.
#
# Maintenance:
# - python -m flask maintenance cleanup-logs --retention-days 90
#   Delete activity log entries older than the retention window.
# - python -m flask maintenance cleanup-sessions
#   Delete expired and revoked session tokens.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .errors import PosError
from .services import activity_service, auth_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")
    if not auth_service.check_admin_exists():
        click.echo("NEXT No admin yet: run 'python -m flask users create-admin' or use /api/users/register-admin.")


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


@users_group.command('create-admin')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(username, password):
    """Create an admin account."""
    try:
        user = auth_service.create_user(username, password, role="admin")
    except PosError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created admin '{user.username}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with roles."""
    users = auth_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        click.echo(f"{user['id']:>4}  {user['username']:<24} {user['role']}")


@click.group('maintenance')
def maintenance_group():
    """Data retention commands."""


@maintenance_group.command('cleanup-logs')
@click.option('--retention-days', type=int, default=None, help='Defaults to ACTION_LOG_RETENTION_DAYS')
@with_appcontext
def cleanup_logs(retention_days):
    """Delete activity log entries older than the retention window."""
    if retention_days is None:
        retention_days = current_app.config["ACTION_LOG_RETENTION_DAYS"]
    deleted = activity_service.cleanup_old_actions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} activity log entries older than {retention_days} days.")


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked session tokens."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired or revoked sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
