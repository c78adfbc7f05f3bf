# Overview: Flask CLI command groups for bootstrap, pricing and sales inspection.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-id admin --admin-email admin@stockroom.local]
#   Idempotent bootstrap: creates tables and the default admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create a demo supplier, family and a few products.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --id jane --name "Jane" --email jane@stockroom.local --role user
#   Register a user under the identity provider's id.
#
# Pricing:
# - python -m flask prices bulk-update --scope-kind supplier --scope-id <id> --mode percentage --value 10
#   Reprice every product of a supplier/family, keeping each product's margin.
#
# Sales:
# - python -m flask sales list --limit 20
#   Most recent sales, newest first.

import click
from flask.cli import with_appcontext

from .extensions import db, get_document_store
from .models import ROLE_ADMIN, ROLES
from .services import catalog_service, family_service, supplier_service, user_service
from .services import sales_service
from .services.pricing_service import (
    PriceUpdateEngine,
    PriceScope,
    PriceAdjustment,
    PriceUpdateError,
    SCOPE_SUPPLIER,
    SCOPE_FAMILY,
    MODE_PERCENTAGE,
    MODE_FIXED,
)
from .time_utils import to_utc_z
from .validation import ValidationError, to_money


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-id', default='admin', help='Identity provider id of the admin user')
@click.option('--admin-name', default='Administrator', help='Admin display name')
@click.option('--admin-email', default='admin@stockroom.local', help='Admin email')
@with_appcontext
def init_system(admin_id, admin_name, admin_email):
    """
    Initialize the stockroom: tables and the default admin user.

    Safe to run repeatedly; an existing admin is left untouched.
    """
    click.echo("START Initializing stockroom...")

    db.create_all()
    click.echo("PASS Tables ready")

    store = get_document_store()
    if store.get_by_id("users", admin_id) is not None:
        click.echo(f"WARN  User '{admin_id}' already exists, skipping...")
    else:
        try:
            user_service.create_user(
                store,
                patch={"name": admin_name, "email": admin_email.lower(), "role": ROLE_ADMIN},
                user_id=admin_id,
            )
            click.echo(f"PASS Created admin user: {admin_id} ({admin_email})")
        except ValidationError as e:
            click.echo(f"FAIL Could not create admin user: {e}")
            return

    click.echo("\nDONE Stockroom initialized.")
    click.echo(f"   Send requests with header X-User-Id: {admin_id}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create a demo supplier, family and products."""
    store = get_document_store()

    supplier = supplier_service.create_supplier(
        store, patch={"name": "Demo Supplies", "phone": "555-0100", "email": "orders@demo.local"}
    )
    family = family_service.create_family(store, name="Beverages")

    demo_products = [
        ("Sparkling Water 500ml", "0.40", "0.90", 120, 24, "7790001000011"),
        ("Orange Juice 1L", "1.10", "2.20", 40, 10, "7790001000028"),
        ("Cola 2L", "1.35", "2.60", 6, 12, "7790001000035"),
    ]
    for name, purchase, sale, stock, min_stock, barcode in demo_products:
        catalog_service.create_product(store, patch={
            "name": name,
            "purchase_price": to_money(purchase, "purchase_price"),
            "sale_price": to_money(sale, "sale_price"),
            "stock": stock,
            "min_stock": min_stock,
            "barcode": barcode,
            "supplier_id": supplier["id"],
            "family_id": family["id"],
        })

    click.echo(f"PASS Supplier {supplier['name']} ({supplier['id']})")
    click.echo(f"PASS Family {family['name']} ({family['id']})")
    click.echo(f"PASS Created {len(demo_products)} products")


# =============================================================================
# USER DIRECTORY COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = user_service.list_users(get_document_store())

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<34} {'Name':<20} {'Email':<25} {'Role':<6} {'Active'}")
    click.echo("="*90)
    for user in users:
        active_str = "Yes" if user.get("is_active") else "No"
        click.echo(f"{user['id']:<34} {user['name']:<20} {user['email']:<25} {user['role']:<6} {active_str}")
    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--id', 'user_id', help="Identity provider id (generated if omitted)")
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(list(ROLES)), default='user', help='Role')
@with_appcontext
def create_user_cli(user_id, name, email, role):
    """Register a user in the directory."""
    try:
        user = user_service.create_user(
            get_document_store(),
            patch={"name": name.strip(), "email": email.strip().lower(), "role": role},
            user_id=user_id,
        )
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created user: {user['id']} ({user['email']}) with role '{user['role']}'")


# =============================================================================
# PRICING COMMANDS
# =============================================================================

@click.group('prices')
def prices_group():
    """Bulk pricing commands."""


@prices_group.command('bulk-update')
@click.option('--scope-kind', type=click.Choice([SCOPE_SUPPLIER, SCOPE_FAMILY]), required=True)
@click.option('--scope-id', required=True, help='Supplier or family id')
@click.option('--mode', type=click.Choice([MODE_PERCENTAGE, MODE_FIXED]), required=True)
@click.option('--value', required=True, help='Percent (e.g. 10) or amount (e.g. 0.50); negative for discounts')
@with_appcontext
def bulk_update_cli(scope_kind, scope_id, mode, value):
    """Reprice every product in scope, preserving each product's margin."""
    try:
        scope = PriceScope(kind=scope_kind, id=scope_id)
        adjustment = PriceAdjustment(mode=mode, value=value)
    except ValidationError as e:
        raise click.BadParameter(str(e))

    try:
        result = PriceUpdateEngine(get_document_store()).apply_bulk_price_update(scope, adjustment)
    except (ValidationError, PriceUpdateError) as e:
        click.echo(f"FAIL {e}; no product was changed")
        raise SystemExit(1)

    click.echo(f"PASS Updated {result.updated_count} products")


# =============================================================================
# SALES COMMANDS
# =============================================================================

@click.group('sales')
def sales_group():
    """Sales history commands."""


@sales_group.command('list')
@click.option('--limit', type=int, default=20, help='Maximum number of sales')
@with_appcontext
def list_sales_cli(limit):
    """List recent sales, newest first."""
    sales = sales_service.list_sales(get_document_store(), limit=limit)

    if not sales:
        click.echo("No sales found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<34} {'Sold at':<22} {'User':<20} {'Lines':<6} {'Total'}")
    click.echo("="*90)
    for sale in sales:
        click.echo(
            f"{sale['id']:<34} {to_utc_z(sale.get('sold_at')) or '-':<22} "
            f"{sale.get('user_id') or '-':<20} {len(sale.get('items') or []):<6} {sale['total']}"
        )
    click.echo("="*90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(prices_group)
    app.cli.add_command(sales_group)
