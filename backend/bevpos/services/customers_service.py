# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, Sale, DebtPayment
from ..validation import ConflictError, NotFoundError, ValidationError

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "address"}


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def list_customers_with_credit() -> list[Customer]:
    """Customers who currently owe money, largest balance first."""
    return (
        db.session.query(Customer)
        .filter(Customer.credit_balance_cents > 0)
        .order_by(Customer.credit_balance_cents.desc(), Customer.id.asc())
        .all()
    )


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(*, patch: dict) -> Customer:
    """
    Create a customer from a validated patch.

    New accounts always start with a zero balance; credit is only added by
    CREDIT sales.
    """
    customer = Customer(
        name=patch["name"],
        phone=patch.get("phone"),
        address=patch.get("address"),
        credit_balance_cents=0,
    )
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, *, patch: dict) -> Customer:
    if "credit_balance_cents" in patch:
        raise ValidationError("credit_balance_cents cannot be edited directly")

    customer = get_customer(customer_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return customer


def delete_customer(customer_id: int) -> None:
    customer = get_customer(customer_id)

    has_sales = db.session.query(Sale.id).filter_by(customer_id=customer_id).first() is not None
    has_payments = db.session.query(DebtPayment.id).filter_by(customer_id=customer_id).first() is not None
    if has_sales or has_payments:
        raise ConflictError("Customer has recorded sales or payments and cannot be deleted")

    db.session.delete(customer)
    db.session.commit()
