# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cart_registry/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "cart_registry:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system create-db
#   Create missing tables (no-op for existing ones).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Admin access:
# - python -m flask admin issue-token [--ttl 1800]
#   Print a signed admin token for scripts.
#
# Registration inspection/maintenance:
# - python -m flask registrations list [--serial SN123] [--limit 50]
#   List registrations, newest first.
# - python -m flask registrations purge --email-domain test.com
#   Dry-run purge report (nothing deleted).
# - python -m flask registrations purge --order-prefix TEST- --execute
#   Delete matching registrations in batches.
#
# Cart inspection:
# - python -m flask carts show SN123
#   Warranty status, ownership history and the cart event log.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import admin_auth_service, cart_service, lookup_service, purge_service, registration_service
from .services.purge_service import PurgeFilters
from .validation import RegistryError


def _settings():
    return current_app.extensions["registry_settings"]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('create-db')
@with_appcontext
def create_db():
    """Create all tables that do not exist yet."""
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
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('admin')
def admin_group():
    """Admin credential commands."""


@admin_group.command('issue-token')
@click.option('--ttl', type=int, default=None, help='Token lifetime in seconds')
@with_appcontext
def issue_token_cli(ttl):
    """Print a signed admin token."""
    settings = _settings()
    token = admin_auth_service.issue_token(
        settings.admin_secret,
        ttl if ttl is not None else settings.admin_token_ttl_seconds,
    )
    click.echo(token)


@click.group('registrations')
def registrations_group():
    """Registration inspection and purge."""


@registrations_group.command('list')
@click.option('--serial', help='Filter by cart serial')
@click.option('--email', help='Filter by customer email')
@click.option('--limit', type=int, default=50, help='Maximum rows')
@with_appcontext
def list_registrations_cli(serial, email, limit):
    """
    List registrations, newest first.

    Example:
        flask registrations list
        flask registrations list --serial SN123
    """
    regs = registration_service.list_registrations(serial=serial, email=email, limit=limit)

    if not regs:
        click.echo("No registrations found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<34} {'Kind':<5} {'Serial':<16} {'Model':<22} {'Status':<20} {'Coverage end'}")
    click.echo("="*110)

    for reg in regs:
        click.echo(
            f"{reg.id:<34} {reg.kind:<5} {reg.serial:<16} {reg.model:<22} "
            f"{reg.status:<20} {reg.coverage_end.isoformat()}"
        )

    click.echo("="*110 + "\n")


@registrations_group.command('purge')
@click.option('--id', 'ids', multiple=True, help='Registration id (repeatable)')
@click.option('--order-prefix', help='Order reference prefix')
@click.option('--email-domain', help='Customer email domain, e.g. test.com')
@click.option('--before', 'created_before', help='Created before date (YYYY-MM-DD)')
@click.option('--execute', is_flag=True, help='Actually delete (default is a dry run)')
@with_appcontext
def purge_registrations_cli(ids, order_prefix, email_domain, created_before, execute):
    """Purge registrations matching ANY filter. Dry run unless --execute."""
    settings = _settings()
    try:
        filters = PurgeFilters.from_payload({
            "ids": list(ids),
            "order_ref_prefix": order_prefix,
            "email_domain": email_domain,
            "created_before": created_before,
        })
        report = purge_service.purge(
            filters,
            dry_run=not execute,
            scan_limit=settings.purge_scan_limit,
            batch_size=settings.purge_batch_size,
        )
    except RegistryError as e:
        raise click.ClickException(e.message)

    click.echo(f"Matched: {report['matched']}")
    for reg_id in report["ids"]:
        click.echo(f"  {reg_id}")

    if not execute:
        click.echo("DRY RUN: nothing deleted. Re-run with --execute to delete.")
        return

    result = report["result"]
    click.echo(f"Deleted: {result['deleted']} of {result['requested']}")
    if result["skipped"]:
        click.echo(f"Skipped (held by a cart): {', '.join(result['skipped'])}")
    if not result["complete"]:
        click.echo(f"FAIL {result['error']}")


@click.group('carts')
def carts_group():
    """Cart inspection commands."""


@carts_group.command('show')
@click.argument('serial')
@with_appcontext
def show_cart_cli(serial):
    """Warranty status, ownership history and event log for one cart."""
    try:
        status = lookup_service.lookup(serial)
        history = registration_service.registrations_for_serial(serial)
        events = cart_service.cart_events(serial)
    except RegistryError as e:
        raise click.ClickException(e.message)

    reg = status.registration
    cart = status.cart
    click.echo(f"Serial:        {serial}")
    click.echo(f"Cart status:   {cart.status if cart else '-'}")
    click.echo(f"Possession:    {cart.possession_dict() if cart else '-'}")
    click.echo(f"Registration:  {reg.id if reg else '-'} ({reg.status if reg else '-'})")
    click.echo(f"Residual days: {status.residual_warranty_days}")

    if history:
        click.echo("\nOwners (newest first):")
        for r in history:
            click.echo(
                f"  {r.id} {r.kind:<4} {r.status:<20} {r.customer_email} "
                f"until {r.coverage_end.isoformat()}"
            )

    if events:
        click.echo("\nEvents:")
        for ev in events:
            click.echo(f"  #{ev.sequence} {ev.occurred_at.isoformat()} {ev.event_type} {ev.payload}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(admin_group)
    app.cli.add_command(registrations_group)
    app.cli.add_command(carts_group)
