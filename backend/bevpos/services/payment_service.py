# Overview: Service-layer operations for debt payments; encapsulates business logic and database work.

"""
Debt Payment Service

WHY: Customers buying on CREDIT settle their balance later, in one or more
payments. Each payment is an append-only row plus a clamped decrement of
the customer's credit balance.

Amount limits (> 0, <= current balance) are checked by the caller with
validation.validate_debt_payment before record_payment is invoked.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import DebtPayment
from bevpos.time_utils import start_of_day, utcnow
from . import balance_service
from .balance_service import BalanceError
from .workflow import Workflow


class PaymentError(Exception):
    """Raised for payment operation errors."""
    kind = "remote"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def record_payment(
    *,
    customer_id: int,
    amount_cents: int,
    payment_method: str,
    sale_id: int | None = None,
    notes: str | None = None,
    workflow: Workflow | None = None,
) -> DebtPayment:
    """
    Record a payment and reduce the customer's balance.

    If the balance update fails after the insert, the payment row stays
    recorded with no balance change and PaymentError is raised.
    """
    wf = workflow if workflow is not None else Workflow(name="record_payment")

    payment = DebtPayment(
        customer_id=customer_id,
        sale_id=sale_id,
        amount_cents=amount_cents,
        payment_method=payment_method,
        notes=notes or None,
    )
    try:
        db.session.add(payment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        wf.failed("insert_payment", exc)
        raise PaymentError("Failed to record payment", details={"workflow": wf.to_dict()}) from exc
    wf.succeeded("insert_payment")

    payment_id = payment.id

    try:
        balance_service.reduce_customer_credit(customer_id, amount_cents)
    except BalanceError as exc:
        current_app.logger.error(
            "Payment %s recorded but credit update failed for customer %s: %s",
            payment_id, customer_id, exc,
        )
        wf.failed("reduce_credit", exc)
        raise PaymentError(
            "Payment recorded but credit balance was not updated",
            details={"payment_id": payment_id, "workflow": wf.to_dict()},
        ) from exc
    wf.succeeded("reduce_credit")

    return db.session.get(DebtPayment, payment_id)


def _payments_query():
    return (
        db.session.query(DebtPayment)
        .options(joinedload(DebtPayment.customer), joinedload(DebtPayment.sale))
        .order_by(DebtPayment.payment_date.desc(), DebtPayment.id.desc())
    )


def list_payments() -> list[DebtPayment]:
    return _payments_query().all()


def list_payments_by_customer(customer_id: int) -> list[DebtPayment]:
    return _payments_query().filter(DebtPayment.customer_id == customer_id).all()


def list_today_payments(now: datetime | None = None) -> list[DebtPayment]:
    today = start_of_day(now or utcnow())
    return (
        _payments_query()
        .filter(DebtPayment.payment_date >= today, DebtPayment.payment_date < today + timedelta(days=1))
        .all()
    )
