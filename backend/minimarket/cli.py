# Overview: Flask CLI command group for catalog bootstrap and inspection.

# backend/minimarket/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "minimarket:create_app" and the two Product Store
#   credentials (PRODUCT_STORE_URL, PRODUCT_STORE_KEY).
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask catalog init-db
#   Create the catalog, audit and local blob tables (idempotent).
# - python -m flask catalog reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask catalog seed-demo
#   Insert a handful of demo products (skips codes that already exist).
# - python -m flask catalog list [--status low]
#   List products with stock and prices.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .runtime import get_runtime
from .services.catalog_service import STOCK_STATUSES, filter_products
from .validation import ConflictError, ValidationError

DEMO_PRODUCTS = [
    {"code": "7751271011212", "name": "Inca Kola 500ml", "category": "Bebidas", "brand": "Inca Kola",
     "costPrice": 1.80, "salePrice": 2.50, "currentStock": 48, "minStock": 12, "maxStock": 120},
    {"code": "7750182000123", "name": "Leche Gloria Azul 400g", "category": "Lácteos", "brand": "Gloria",
     "costPrice": 3.20, "salePrice": 4.20, "currentStock": 36, "minStock": 10, "maxStock": 96},
    {"code": "7751158000456", "name": "Arroz Costeño 1kg", "category": "Abarrotes", "brand": "Costeño",
     "costPrice": 3.90, "salePrice": 4.90, "currentStock": 25, "minStock": 8, "maxStock": 60},
    {"code": "7750243000789", "name": "Pan de molde Bimbo", "category": "Panadería", "brand": "Bimbo",
     "costPrice": 6.50, "salePrice": 8.90, "currentStock": 6, "minStock": 6, "maxStock": 30},
    {"code": "7752748000321", "name": "Galleta Soda Field", "category": "Snacks", "brand": "Field",
     "costPrice": 0.45, "salePrice": 0.70, "currentStock": 80, "minStock": 20, "maxStock": 200},
]


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap and inspection commands."""


@catalog_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables on both binds. Existing tables are left alone."""
    db.create_all()
    click.echo("PASS Tables created")


@catalog_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the stored sales history!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    db.create_all()
    click.echo("PASS Schema recreated")


@catalog_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert the demo products through the catalog service (validated and audited)."""
    runtime = get_runtime()
    runtime.load()

    created = skipped = 0
    for payload in DEMO_PRODUCTS:
        try:
            product = runtime.catalog.add_product(payload)
        except ConflictError:
            skipped += 1
            continue
        except ValidationError as e:
            raise click.ClickException(f"{payload['code']}: {e}")
        created += 1
        click.echo(f"PASS {product.code} {product.name}")

    current_app.logger.info("Demo seed: %d created, %d skipped", created, skipped)
    click.echo(f"\nDONE {created} created, {skipped} already present")


@catalog_group.command('list')
@click.option('--status', type=click.Choice(STOCK_STATUSES), default='all', help='Stock status filter')
@click.option('--search', default='', help='Name, code or brand')
@with_appcontext
def list_products(status, search):
    """List products with stock and prices."""
    runtime = get_runtime()
    runtime.load()

    products = filter_products(runtime.cache.snapshot(), search=search, status=status)
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'Code':<15} {'Name':<30} {'Stock':>6} {'Min':>5} {'Cost':>9} {'Price':>9}")
    click.echo("-" * 79)
    for p in products:
        click.echo(
            f"{p.code:<15} {p.name[:30]:<30} {p.current_stock:>6} {p.min_stock:>5} "
            f"{p.cost_price:>9.2f} {p.sale_price:>9.2f}"
        )
    click.echo(f"\nTotal: {len(products)} product(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(catalog_group)
