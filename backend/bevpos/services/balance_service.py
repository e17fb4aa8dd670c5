# Overview: Atomic stock and credit adjustments; the only write path for balances.

"""
Balance operations.

Each function is a single UPDATE ... SET col = col +/- :n statement committed
on its own, so concurrent sales never lose an update on this path.
Stock and credit balances are never overwritten with a value computed in
Python here; see nonatomic.py for the one place that does.
"""

from __future__ import annotations

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Customer


class BalanceError(Exception):
    """Raised when an atomic stock or credit adjustment cannot be applied."""
    pass


def _execute_adjustment(stmt, missing_message: str) -> None:
    try:
        result = db.session.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            db.session.rollback()
            raise BalanceError(missing_message)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise BalanceError(str(exc)) from exc


def _require_positive(value: int, field: str) -> None:
    if value is None or value <= 0:
        raise BalanceError(f"{field} must be > 0")


def decrease_product_stock(product_id: int, quantity: int) -> None:
    """Subtract quantity from stock. Fails (stock CHECK) rather than go negative."""
    _require_positive(quantity, "quantity")
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock - quantity)
    )
    _execute_adjustment(stmt, f"Product {product_id} not found")


def increase_product_stock(product_id: int, quantity: int) -> None:
    _require_positive(quantity, "quantity")
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
    )
    _execute_adjustment(stmt, f"Product {product_id} not found")


def increase_customer_credit(customer_id: int, amount_cents: int) -> None:
    _require_positive(amount_cents, "amount_cents")
    stmt = (
        update(Customer)
        .where(Customer.id == customer_id)
        .values(credit_balance_cents=Customer.credit_balance_cents + amount_cents)
    )
    _execute_adjustment(stmt, f"Customer {customer_id} not found")


def reduce_customer_credit(customer_id: int, amount_cents: int) -> None:
    """Subtract from the credit balance, clamped at zero."""
    _require_positive(amount_cents, "amount_cents")
    remaining = Customer.credit_balance_cents - amount_cents
    stmt = (
        update(Customer)
        .where(Customer.id == customer_id)
        .values(credit_balance_cents=case((remaining < 0, 0), else_=remaining))
    )
    _execute_adjustment(stmt, f"Customer {customer_id} not found")
