"""
Sales Service - sale creation and deletion workflows

A sale touches three tables (sales, sale_items, products) and, for CREDIT
sales, the customer's balance. Each step below is its own commit; there is
no enclosing transaction and nothing is rolled back automatically. Callers
that care about partial application pass a Workflow and inspect it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleItem
from ..models.sales import PAYMENT_TYPE_CREDIT
from ..validation import DuplicateTransactionError, NotFoundError
from bevpos.time_utils import start_of_day, utcnow
from . import balance_service, nonatomic
from .balance_service import BalanceError
from .workflow import Workflow


class SaleError(Exception):
    """Raised for sale operation errors."""
    kind = "remote"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    product_name: str
    quantity: int
    unit_price_cents: int
    total_price_cents: int


def _transaction_id_taken(transaction_id: str | None) -> bool:
    if transaction_id is None:
        return False
    return db.session.query(Sale.id).filter_by(transaction_id=transaction_id).first() is not None


def create_sale(
    *,
    transaction_id: str | None,
    customer_id: int,
    customer_name: str,
    total_amount_cents: int,
    payment_type: str,
    items: list[SaleItemInput],
    workflow: Workflow | None = None,
) -> Sale:
    """
    Persist a sale with its items and apply stock/credit side effects.

    Only steps 1-2 can fail the call. Stock decrements and the credit
    increment are logged and recorded on failure, never raised.
    """
    wf = workflow if workflow is not None else Workflow(name="create_sale")

    # 1. Sale header
    sale = Sale(
        transaction_id=transaction_id,
        customer_id=customer_id,
        customer_name=customer_name,
        total_amount_cents=total_amount_cents,
        payment_type=payment_type,
    )
    try:
        db.session.add(sale)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        wf.failed("insert_sale", exc)
        if _transaction_id_taken(transaction_id):
            raise DuplicateTransactionError(
                f'Transaction ID "{transaction_id}" already exists'
            ) from exc
        raise SaleError("Failed to create sale", details={"workflow": wf.to_dict()}) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        wf.failed("insert_sale", exc)
        raise SaleError("Failed to create sale", details={"workflow": wf.to_dict()}) from exc
    wf.succeeded("insert_sale")

    sale_id = sale.id

    # 2. Items. The header from step 1 stays if this fails.
    try:
        db.session.add_all([
            SaleItem(
                sale_id=sale_id,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                total_price_cents=item.total_price_cents,
            )
            for item in items
        ])
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        wf.failed("insert_items", exc)
        current_app.logger.error("Sale %s persisted without items: %s", sale_id, exc)
        raise SaleError(
            "Failed to save sale items",
            details={"sale_id": sale_id, "workflow": wf.to_dict()},
        ) from exc
    wf.succeeded("insert_items")

    # 3. Stock, one product at a time
    for item in items:
        step = f"decrease_stock:{item.product_id}"
        try:
            balance_service.decrease_product_stock(item.product_id, item.quantity)
        except BalanceError as exc:
            current_app.logger.warning(
                "Stock update failed for product %s on sale %s: %s", item.product_id, sale_id, exc
            )
            wf.failed(step, exc)
        else:
            wf.succeeded(step)

    # 4. Credit
    if payment_type == PAYMENT_TYPE_CREDIT:
        try:
            balance_service.increase_customer_credit(customer_id, total_amount_cents)
        except BalanceError as exc:
            current_app.logger.warning(
                "Credit update failed for customer %s on sale %s: %s", customer_id, sale_id, exc
            )
            wf.failed("increase_credit", exc)
        else:
            wf.succeeded("increase_credit")

    return db.session.get(Sale, sale_id)


def _restore_stock(product_id: int, quantity: int, wf: Workflow, sale_id: int) -> None:
    step = f"restore_stock:{product_id}"
    try:
        balance_service.increase_product_stock(product_id, quantity)
    except BalanceError as exc:
        current_app.logger.warning(
            "Atomic stock restore failed for product %s (sale %s), using fallback: %s",
            product_id, sale_id, exc,
        )
    else:
        wf.succeeded(step)
        return

    try:
        nonatomic.restore_stock_nonatomic(product_id, quantity)
    except BalanceError as exc:
        current_app.logger.error(
            "Stock restore fallback failed for product %s (sale %s): %s", product_id, sale_id, exc
        )
        wf.failed(step, exc, fallback=True)
    else:
        wf.succeeded(step, fallback=True)


def _restore_credit(customer_id: int, amount_cents: int, wf: Workflow, sale_id: int) -> None:
    step = "restore_credit"
    try:
        balance_service.reduce_customer_credit(customer_id, amount_cents)
    except BalanceError as exc:
        current_app.logger.warning(
            "Atomic credit restore failed for customer %s (sale %s), using fallback: %s",
            customer_id, sale_id, exc,
        )
    else:
        wf.succeeded(step)
        return

    try:
        nonatomic.restore_credit_nonatomic(customer_id, amount_cents)
    except BalanceError as exc:
        current_app.logger.error(
            "Credit restore fallback failed for customer %s (sale %s): %s", customer_id, sale_id, exc
        )
        wf.failed(step, exc, fallback=True)
    else:
        wf.succeeded(step, fallback=True)


def delete_sale(sale_id: int, workflow: Workflow | None = None) -> dict:
    """
    Delete a sale and reverse its stock and credit effects.

    Best-effort compensation: restorations are applied before the rows are
    deleted and are not undone if a delete fails. Returns the sale as it
    was before deletion, items included.
    """
    wf = workflow if workflow is not None else Workflow(name="delete_sale")

    # 1. Load
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        wf.failed("load_sale", "Sale not found")
        raise NotFoundError("Sale not found")
    snapshot = sale.to_dict(include_items=True)
    wf.succeeded("load_sale")

    # 2. Stock
    for item in snapshot["items"]:
        _restore_stock(item["product_id"], item["quantity"], wf, sale_id)

    # 3. Credit
    if snapshot["payment_type"] == PAYMENT_TYPE_CREDIT and snapshot["total_amount_cents"] > 0:
        _restore_credit(snapshot["customer_id"], snapshot["total_amount_cents"], wf, sale_id)

    # 4. Items
    try:
        db.session.query(SaleItem).filter_by(sale_id=sale_id).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        wf.failed("delete_items", exc)
        current_app.logger.error("Failed to delete items of sale %s after restoring balances: %s", sale_id, exc)
        raise SaleError("Failed to delete sale items", details={"workflow": wf.to_dict()}) from exc
    wf.succeeded("delete_items")

    # 5. Header
    try:
        db.session.query(Sale).filter_by(id=sale_id).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        wf.failed("delete_sale", exc)
        current_app.logger.error("Failed to delete sale %s after removing its items: %s", sale_id, exc)
        raise SaleError("Failed to delete sale", details={"workflow": wf.to_dict()}) from exc
    wf.succeeded("delete_sale")

    # The row is gone; keep the stale instance out of later lookups.
    if sale in db.session:
        db.session.expunge(sale)
    return snapshot


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sales() -> list[Sale]:
    return (
        db.session.query(Sale)
        .order_by(Sale.transaction_date.desc(), Sale.id.desc())
        .all()
    )


def list_today_sales(now: datetime | None = None) -> list[Sale]:
    today = start_of_day(now or utcnow())
    return (
        db.session.query(Sale)
        .filter(Sale.transaction_date >= today, Sale.transaction_date < today + timedelta(days=1))
        .order_by(Sale.transaction_date.desc(), Sale.id.desc())
        .all()
    )


def list_credit_sales_by_customer(customer_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer_id, Sale.payment_type == PAYMENT_TYPE_CREDIT)
        .order_by(Sale.transaction_date.desc(), Sale.id.desc())
        .all()
    )
