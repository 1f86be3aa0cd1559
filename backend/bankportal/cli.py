# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bankportal/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system check-db
#   Connect to the database and list its tables.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role staff]
#   List users.
# - python -m flask users create-staff --username ops_lead --full-name "Ops Lead" --id-number 8001015009087 --account-number 100200300 --password "Secret123"
#   Create a staff account (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired/revoked sessions older than the cutoff.
# - python -m flask maintenance purge-rate-limits --older-than-hours 24
#   Delete rate limit counters for old windows.
# - python -m flask maintenance security-events [--type LOGIN_FAILED] [--limit 50]
#   Show the most recent security events, newest first.

import click
from datetime import timedelta
from flask.cli import with_appcontext
from sqlalchemy import inspect, text

from .extensions import db
from .models import User, ROLE_STAFF, VALID_ROLES
from .services.auth_service import register_user, DuplicateUserError
from .services import rate_limit_service, security_service, session_service
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    tables = sorted(inspect(db.engine).get_table_names())
    click.echo(f"PASS Schema ready: {', '.join(tables)}")


@system_group.command('check-db')
@with_appcontext
def check_db():
    """Verify the database is reachable and list its tables."""
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        click.echo(f"FAIL Connection failed: {e}")
        raise SystemExit(1)

    tables = sorted(inspect(db.engine).get_table_names())
    click.echo("PASS Connection successful")
    for name in tables:
        click.echo(f"   - {name}")


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
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and provisioning commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(VALID_ROLES), default=None, help='Filter by role')
@with_appcontext
def list_users(role):
    """List users."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)
    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    for user in users:
        click.echo(
            f"{user.id:>5}  {user.username:<20} {user.role:<9} "
            f"acct={user.account_number} created={user.created_at:%Y-%m-%d}"
        )


@users_group.command('create-staff')
@click.option('--username', prompt=True)
@click.option('--full-name', prompt=True)
@click.option('--id-number', prompt=True)
@click.option('--account-number', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_staff(username, full_name, id_number, account_number, password):
    """
    Create a staff account.

    This is the provisioning path when ALLOW_STAFF_SELF_REGISTRATION is off.
    """
    try:
        user = register_user(
            username=username,
            full_name=full_name,
            id_number=id_number,
            account_number=account_number,
            password=password,
            role=ROLE_STAFF,
        )
    except (ValidationError, DuplicateUserError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created staff user: {user.username} (ID: {user.id})")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(older_than_days):
    """Delete expired or revoked sessions older than the cutoff."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"PASS Deleted {deleted} sessions")


@maintenance_group.command('purge-rate-limits')
@click.option('--older-than-hours', default=24, show_default=True, type=int)
@with_appcontext
def purge_rate_limits(older_than_hours):
    """Delete rate limit counters for windows older than the cutoff."""
    deleted = rate_limit_service.purge_windows(timedelta(hours=older_than_hours))
    click.echo(f"PASS Deleted {deleted} rate limit windows")


@maintenance_group.command('security-events')
@click.option('--type', 'event_type', default=None, help='Filter by event type, e.g. LOGIN_FAILED')
@click.option('--limit', default=50, show_default=True, type=int)
@with_appcontext
def security_events(event_type, limit):
    """Show recent security events, newest first."""
    events = security_service.recent_events(event_type=event_type, limit=limit)
    if not events:
        click.echo("No security events found.")
        return

    for event in events:
        outcome = "ok" if event.success else "FAIL"
        click.echo(
            f"{event.occurred_at:%Y-%m-%d %H:%M:%S}  {event.event_type:<18} {outcome:<4} "
            f"user={event.user_id or '-'} {event.action or ''} {event.resource or ''} {event.reason or ''}".rstrip()
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
