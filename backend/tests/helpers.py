"""Shared helpers for service-level tests."""

from bevpos.extensions import db
from bevpos.models import Product, Customer
from bevpos.services.sales_service import SaleItemInput


def item_for(product: Product, quantity: int, unit_price_cents: int) -> SaleItemInput:
    """Build a priced line the way checkout does."""
    return SaleItemInput(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        total_price_cents=quantity * unit_price_cents,
    )


def stock_of(product_id: int) -> int:
    return db.session.get(Product, product_id).stock


def credit_of(customer_id: int) -> int:
    return db.session.get(Customer, customer_id).credit_balance_cents
