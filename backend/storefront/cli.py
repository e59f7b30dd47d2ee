# Overview: Flask CLI command groups for bootstrap, user handoff, and store snapshots.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--with-demo]
#   Create tables and (optionally) the demo users and products.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users (identity provider handoff):
# - python -m flask users list
# - python -m flask users create --username ali --role user --status pending_review
# - python -m flask users set-status 2 verified
# - python -m flask users issue-token admin [--ttl-hours 8]
#   Print a bearer token for an existing user.
#
# Snapshots:
# - python -m flask state export [--output store.json]
# - python -m flask state import store.json [--replace]

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import session_service, store_service, user_service
from .services.permission_service import ROLES, USER_STATUSES
from .validation import StorefrontError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--with-demo', is_flag=True, help='Add demo users and products')
@with_appcontext
def init_system(with_demo):
    """
    Initialize the storefront database.

    Creates any missing tables. With --with-demo also creates:
    - Users: admin (admin), user1 and zooka (user), all verified
    - Products: Standard Widget (barcode 123456), Premium Gadget (barcode 789012)
    """
    click.echo("START Initializing storefront...")
    db.create_all()
    click.echo("PASS Tables ready")

    if with_demo:
        created = store_service.seed_demo_data()
        click.echo(f"PASS Demo data: {created['users']} users, {created['products']} products created")

    click.echo("DONE Issue a token with: python -m flask users issue-token admin")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and session handoff."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and review status."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 60)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<8} {'Status'}")
    click.echo("=" * 60)
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<8} {user.status}")
    click.echo("=" * 60 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--role', type=click.Choice(ROLES), default='user', show_default=True)
@click.option('--status', type=click.Choice(USER_STATUSES), default='pending_info', show_default=True)
@click.option('--full-name', default=None, help='Display name')
@click.option('--phone', default=None, help='Contact phone')
@with_appcontext
def create_user_cli(username, role, status, full_name, phone):
    """Create a user record."""
    try:
        user = user_service.create_user(username, role=role, status=status, full_name=full_name, phone=phone)
    except StorefrontError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role}, status: {user.status})")


@users_group.command('set-status')
@click.argument('user_id', type=int)
@click.argument('status', type=click.Choice(USER_STATUSES))
@with_appcontext
def set_status_cli(user_id, status):
    """Record a review decision for a user."""
    try:
        user = user_service.apply_user_status(user_id, status)
    except StorefrontError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {user.username} is now {user.status}")


@users_group.command('issue-token')
@click.argument('username')
@click.option('--ttl-hours', type=int, default=None, help='Override SESSION_TTL_HOURS')
@with_appcontext
def issue_token_cli(username, ttl_hours):
    """Print a bearer token for USERNAME."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User not found: {username}")
    session, token = session_service.create_session(user.id, ttl_hours=ttl_hours)
    click.echo(f"Token for {user.username} (expires {session.expires_at.isoformat()}Z):")
    click.echo(token)


@click.group('state')
def state_group():
    """Whole-store snapshot export and import."""


@state_group.command('export')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None,
              help='Write to a file instead of stdout')
@with_appcontext
def export_state_cli(output):
    """Dump products, customers, sales, expenses, users and settings as JSON."""
    data = json.dumps(store_service.export_state(), indent=2, ensure_ascii=False)
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(data)
        click.echo(f"PASS Snapshot written to {output}")
    else:
        click.echo(data)


@state_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--replace', is_flag=True, help='Overwrite a store that already holds data')
@with_appcontext
def import_state_cli(path, replace):
    """Load a snapshot produced by 'state export'."""
    with open(path, encoding="utf-8") as fh:
        try:
            state = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Invalid JSON: {e}")
    try:
        result = store_service.import_state(state, replace=replace)
    except StorefrontError as e:
        raise click.ClickException(str(e))
    counts = ", ".join(f"{k}={v}" for k, v in result["imported"].items())
    click.echo(f"PASS Snapshot imported ({counts})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(state_group)
