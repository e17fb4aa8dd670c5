# Overview: Best-effort, NON-ATOMIC read-modify-write balance restores.

"""
Fallback restores used only by sale deletion when the atomic operation in
balance_service fails.

NOT SAFE UNDER CONCURRENCY: the value is read, changed in Python and written
back. A sale or payment committed between the read and the write is lost.
Nothing outside sales_service.delete_sale should call these.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Customer
from .balance_service import BalanceError


def restore_stock_nonatomic(product_id: int, quantity: int) -> int:
    """Add quantity back to stock. Returns the stock value written."""
    try:
        product = db.session.get(Product, product_id)
        if product is None:
            raise BalanceError(f"Product {product_id} not found")
        product.stock = product.stock + quantity
        db.session.commit()
        return product.stock
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise BalanceError(str(exc)) from exc


def restore_credit_nonatomic(customer_id: int, amount_cents: int) -> int:
    """Take amount_cents off the balance, clamped at zero. Returns the balance written."""
    try:
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise BalanceError(f"Customer {customer_id} not found")
        customer.credit_balance_cents = max(0, customer.credit_balance_cents - amount_cents)
        db.session.commit()
        return customer.credit_balance_cents
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise BalanceError(str(exc)) from exc
