# Overview: Flask CLI command groups for bootstrap, inspection, and reporting.

# backend/bevpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use "flask db upgrade" for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Idempotently add the demo catalogue and a walk-in customer.
#
# Inspection:
# - python -m flask products list [--status LOW_STOCK]
# - python -m flask customers list [--with-credit]
# - python -m flask reports summary [--date-range today]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, Customer
from .services import products_service, customers_service, sales_service, reporting_service


DEMO_PRODUCTS = [
    ("Water 500ml", "Water", 120),
    ("Water 1.5L", "Water", 60),
    ("Water 19L Refill", "Water", 15),
    ("Cola 330ml", "Drinks", 48),
    ("Orange Juice 1L", "Drinks", 18),
]

WALK_IN_CUSTOMER = "Walk-in"


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created/verified")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for demo data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Add demo products and the walk-in customer if they are missing."""
    created = 0
    for name, category, stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(name=name).first():
            click.echo(f"WARN  Product '{name}' already exists, skipping...")
            continue
        products_service.create_product(patch={"name": name, "category": category, "stock": stock})
        created += 1
        click.echo(f"PASS Created product: {name} ({category}, stock {stock})")

    if not db.session.query(Customer).filter_by(name=WALK_IN_CUSTOMER).first():
        customers_service.create_customer(patch={"name": WALK_IN_CUSTOMER})
        click.echo(f"PASS Created customer: {WALK_IN_CUSTOMER}")

    click.echo(f"DONE Seeded {created} product(s)")


@click.group('products')
def products_group():
    """Product inspection commands."""


@products_group.command('list')
@click.option('--status', type=click.Choice(reporting_service.STOCK_STATUSES), default=None,
              help='Only show products in this stock status')
@with_appcontext
def list_products_cli(status):
    rows = [p.to_dict() for p in products_service.list_products()]
    rows = reporting_service.filter_products(rows, status=status)

    if not rows:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Category':<10} {'Stock':<7} {'Status'}")
    click.echo("="*70)
    for p in rows:
        click.echo(
            f"{p['id']:<5} {p['name']:<30} {p['category']:<10} {p['stock']:<7} "
            f"{reporting_service.stock_status(p['stock'])}"
        )
    click.echo("="*70 + "\n")


@click.group('customers')
def customers_group():
    """Customer inspection commands."""


@customers_group.command('list')
@click.option('--with-credit', is_flag=True, help='Only customers who owe money')
@with_appcontext
def list_customers_cli(with_credit):
    if with_credit:
        customers = customers_service.list_customers_with_credit()
    else:
        customers = customers_service.list_customers()

    if not customers:
        click.echo("No customers found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Phone':<16} {'Credit'}")
    click.echo("="*70)
    for c in customers:
        click.echo(f"{c.id:<5} {c.name:<30} {c.phone or '-':<16} {_money(c.credit_balance_cents)}")
    click.echo("="*70 + "\n")


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('summary')
@click.option('--date-range', type=click.Choice(["today", "week", "month", "year", "all"]), default="today")
@with_appcontext
def summary_cli(date_range):
    """Sales totals, outstanding credit and stock alerts."""
    sales = [s.to_dict() for s in sales_service.list_sales()]
    sales = reporting_service.filter_sales(sales, date_range=date_range)
    totals = reporting_service.summarize_sales(sales)
    customers = reporting_service.customer_summary(c.to_dict() for c in customers_service.list_customers())
    stock = reporting_service.inventory_summary(p.to_dict() for p in products_service.list_products())

    click.echo(f"Sales ({date_range}): {totals['total_transactions']} transaction(s), "
               f"total {_money(totals['total_sales_cents'])}")
    click.echo(f"  Cash:   {_money(totals['cash_sales_cents'])}")
    click.echo(f"  Credit: {_money(totals['credit_sales_cents'])}")
    click.echo(f"Outstanding credit: {_money(customers['total_credit_cents'])} "
               f"across {customers['customers_with_credit']} customer(s)")
    click.echo(f"Stock alerts: {stock['low_stock']} low, {stock['out_of_stock']} out of stock")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(reports_group)
