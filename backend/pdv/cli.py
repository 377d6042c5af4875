# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pdv/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "pdv:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent). Use `flask db upgrade` once migrations exist.
# - python -m flask system permissions [--role CAIXA]
#   List permissions by category and the roles that hold them.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Insert the demo catalog; existing SKUs are skipped. Opening stock goes through the ledger.
# - python -m flask catalog list [--all]
#   List products with price and on-hand quantity.
#
# Stock ledger:
# - python -m flask stock adjust --product-id 1 --delta -2 --note "Broken on shelf"
#   Record a signed ADJUST movement.
# - python -m flask stock check-ledger
#   Compare every product's cached on-hand with its ledger sum (exit code 1 on drift).

import click
from flask.cli import with_appcontext

from .authorizer import Identity
from .errors import PdvError
from .extensions import db
from .permissions import (
    ROLE_ADMIN,
    ROLES,
    PermissionCategory,
    get_all_permission_codes,
    get_permissions_by_category,
    get_role_permissions,
    normalize_role,
)
from .services import catalog_service, stock_service

SYSTEM_USER_ID = "system"

DEMO_PRODUCTS = (
    {"sku": "EDL-CAMISETA-P", "name": "Camiseta EDL - P", "price_cents": 5000, "cost_cents": 2800, "stock_on_hand": 20, "category": "Vestuario"},
    {"sku": "EDL-CAMISETA-M", "name": "Camiseta EDL - M", "price_cents": 5000, "cost_cents": 2800, "stock_on_hand": 25, "category": "Vestuario"},
    {"sku": "EDL-CAMISETA-G", "name": "Camiseta EDL - G", "price_cents": 5000, "cost_cents": 2800, "stock_on_hand": 25, "category": "Vestuario"},
    {"sku": "EDL-CAMISETA-GG", "name": "Camiseta EDL - GG", "price_cents": 5500, "cost_cents": 3000, "stock_on_hand": 15, "category": "Vestuario"},
    {"sku": "EDL-CANECA", "name": "Caneca FEJEMG", "price_cents": 3500, "cost_cents": 1800, "stock_on_hand": 30, "category": "Acessorios"},
    {"sku": "EDL-ECOBAG", "name": "Ecobag FEJEMG", "price_cents": 4000, "cost_cents": 2200, "stock_on_hand": 18, "category": "Acessorios"},
    {"sku": "EDL-BROCHE", "name": "Broche FEJEMG", "price_cents": 1500, "cost_cents": 600, "stock_on_hand": 40, "category": "Acessorios"},
    {"sku": "EDL-ADESIVO", "name": "Adesivo FEJEMG", "price_cents": 500, "cost_cents": 100, "stock_on_hand": 100, "category": "Acessorios"},
)


def _system_identity(actor: str = SYSTEM_USER_ID) -> Identity:
    return Identity(user_id=actor, role=ROLE_ADMIN)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the stock ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask catalog seed' for demo data.")


@system_group.command('permissions')
@click.option('--role', default=None, help='Only list permissions granted to this role')
@with_appcontext
def list_permissions(role):
    """List permissions by category with the roles that hold them."""
    if role is not None and normalize_role(role) is None:
        raise click.ClickException(f"Unknown role {role!r}. Expected one of: {', '.join(ROLES)}")

    granted = get_role_permissions(role) if role is not None else None
    listed = 0
    for category in PermissionCategory.ALL:
        perms = [p for p in get_permissions_by_category(category) if granted is None or p[0] in granted]
        if not perms:
            continue
        click.echo(f"[{category}]")
        for code, name, description, _ in perms:
            holders = [r for r in ROLES if code in get_role_permissions(r)]
            click.echo(f"  {code:<16} {name:<16} roles={','.join(holders)}")
            click.echo(f"  {'':<16} {description}")
            listed += 1

    click.echo(f"PASS {listed} of {len(get_all_permission_codes())} permission(s) listed.")


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert the demo catalog. Safe to run repeatedly."""
    actor = _system_identity()
    created = 0
    for item in DEMO_PRODUCTS:
        if catalog_service.sku_exists(item["sku"]):
            click.echo(f"SKIP {item['sku']} already exists")
            continue
        product = catalog_service.create_product(actor, dict(item))
        created += 1
        click.echo(f"PASS Created {product.sku} (ID: {product.id}, on hand: {product.stock_on_hand})")

    click.echo(f"PASS Seed complete: {created} product(s) created.")


@catalog_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive products')
@with_appcontext
def list_catalog(include_inactive):
    """List products with price and on-hand quantity."""
    products = catalog_service.list_products(include_inactive=include_inactive)
    if not products:
        click.echo("No products found.")
        return

    for p in products:
        status = "active" if p.is_active else "inactive"
        click.echo(f"{p.id:>4}  {p.sku:<20} {p.name:<30} {p.price_cents:>8}c  on_hand={p.stock_on_hand:<6} {status}")


@click.group('stock')
def stock_group():
    """Stock ledger commands."""


@stock_group.command('adjust')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--delta', type=int, required=True, help='Signed quantity change (non-zero)')
@click.option('--note', default=None, help='Reason for the adjustment')
@click.option('--actor', default=SYSTEM_USER_ID, show_default=True, help='User recorded on the movement')
@with_appcontext
def adjust_stock(product_id, delta, note, actor):
    """Record a signed ADJUST movement."""
    try:
        movement = stock_service.record(product_id, "ADJUST", delta, note, actor)
    except PdvError as e:
        raise click.ClickException(f"{e.code}: {e.message} {e.details}")

    on_hand = stock_service.current_on_hand(product_id)
    click.echo(f"PASS Movement {movement.id}: product {product_id} delta {delta:+d}, on hand now {on_hand}")


@stock_group.command('check-ledger')
@with_appcontext
def check_ledger():
    """Verify stock_on_hand == SUM(ledger deltas) for every product."""
    drift = stock_service.verify_ledger()
    if not drift:
        click.echo("PASS Ledger consistent for all products.")
        return

    for row in drift:
        click.echo(
            f"FAIL product {row['product_id']} ({row['sku']}): "
            f"stock_on_hand={row['stock_on_hand']} ledger_sum={row['ledger_sum']}"
        )
    click.get_current_context().exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
