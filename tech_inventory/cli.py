"""
Custom Flask CLI commands.

These commands are registered with the app by ``register_commands()`` in
the application factory. Run them with ``flask <command_name>``.

Usage::

    flask db-check       # Verify database connectivity and tables
    flask create-admin   # Create or reuse the bootstrap admin account
"""

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect

from tech_inventory.extensions import db
from tech_inventory.models.user import ROLE_ADMIN
from tech_inventory.services import audit_service, user_service

_EXPECTED_TABLES = ("user", "asset", "audit_log")


@click.command("db-check")
@with_appcontext
def db_check_command():
    """
    Verify database connectivity and confirm the expected tables exist.

    Runs a trivial query against the configured database and lists the
    application tables it finds.  Useful for confirming DATABASE_URL and
    that ``flask db upgrade`` has been run.
    """
    click.echo("=" * 60)
    click.echo("  Tech Inventory — Database Connectivity Check")
    click.echo("=" * 60)

    # Never echo credentials embedded in the URL.
    db_url = db.engine.url.render_as_string(hide_password=True)
    click.echo(f"\n  Database: {db_url}\n")

    # -- Step 1: Basic connectivity ----------------------------------------
    click.echo("[1/2] Testing connection...")
    try:
        row = db.session.execute(db.text("SELECT 1")).fetchone()
        if row and row[0] == 1:
            click.secho("      ✓ Connected successfully.", fg="green")
        else:
            click.secho("      ✗ Unexpected result from test query.", fg="red")
            raise SystemExit(1)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Connection failed: {exc}", fg="red")
        click.echo("\n  Troubleshooting tips:")
        click.echo("    - Is the database server running?")
        click.echo("    - Does your .env DATABASE_URL match your server config?")
        raise SystemExit(1)

    # -- Step 2: Tables ----------------------------------------------------
    click.echo("[2/2] Checking tables...\n")
    found = set(inspect(db.engine).get_table_names())
    missing = [name for name in _EXPECTED_TABLES if name not in found]
    for name in _EXPECTED_TABLES:
        mark = "✓" if name in found else "✗"
        click.echo(f"      {mark} {name}")

    if missing:
        click.secho(
            f"\n      Missing tables: {', '.join(missing)}. "
            "Run `flask db upgrade` first.",
            fg="red",
        )
        raise SystemExit(1)

    click.echo("\n" + "=" * 60)
    click.secho("  All checks passed. Database is ready.", fg="green", bold=True)
    click.echo("=" * 60)


@click.command("create-admin")
@click.option("--email", default=None, help="Admin email (default: ADMIN_EMAIL).")
@click.option(
    "--password", default=None, help="Admin password (default: ADMIN_PASSWORD)."
)
@click.option("--name", default=None, help="Display name (default: ADMIN_NAME).")
@with_appcontext
def create_admin_command(email: str | None, password: str | None, name: str | None):
    """
    Create the bootstrap admin account, or reuse an existing one.

    Credentials come from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME unless
    overridden by options.  An existing user with the email is promoted
    to admin, reactivated, and given the new password if one is set.
    Exits with status 0 on success and 1 on any error.
    """
    email = (email or current_app.config.get("ADMIN_EMAIL") or "").strip()
    password = password or current_app.config.get("ADMIN_PASSWORD") or ""
    name = name or current_app.config.get("ADMIN_NAME") or "Admin User"

    if not email:
        click.secho("✗ ADMIN_EMAIL (or --email) is required.", fg="red")
        raise SystemExit(1)

    try:
        user = user_service.get_user_by_email(email)
        if user is None:
            if not password:
                click.secho(
                    "✗ ADMIN_PASSWORD (or --password) is required to create "
                    "a new admin.",
                    fg="red",
                )
                raise SystemExit(1)
            user = user_service.create_user(
                email=email,
                display_name=name,
                password=password,
                role=ROLE_ADMIN,
            )
            click.secho(f"✓ Created admin {user.email} (id={user.id}).", fg="green")
        else:
            click.echo(f"  User '{user.email}' already exists (id={user.id}).")
            previous = user.to_dict()
            user.role = ROLE_ADMIN
            user.is_active = True
            if password:
                user.set_password(password)
            audit_service.log_change(
                user_id=None,
                action_type="UPDATE",
                entity_type="user",
                entity_id=user.id,
                previous_value=previous,
                new_value=user.to_dict(),
            )
            db.session.commit()
            click.secho(f"✓ {user.email} is an active admin.", fg="green")
    except Exception as exc:  # pylint: disable=broad-exception-caught
        db.session.rollback()
        click.secho(f"✗ Could not create admin: {exc}", fg="red")
        raise SystemExit(1)


def register_commands(app):
    """Register all custom CLI commands with the Flask application."""
    app.cli.add_command(db_check_command)
    app.cli.add_command(create_admin_command)
