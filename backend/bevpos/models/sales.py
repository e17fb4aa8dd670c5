from __future__ import annotations

from ..extensions import db
from bevpos.time_utils import to_utc_z, utcnow


PAYMENT_TYPE_CASH = "CASH"
PAYMENT_TYPE_CREDIT = "CREDIT"

PAYMENT_TYPES = (PAYMENT_TYPE_CASH, PAYMENT_TYPE_CREDIT)

PAYMENT_METHOD_CASH = "CASH"
PAYMENT_METHOD_BANK_TRANSFER = "BANK_TRANSFER"
PAYMENT_METHOD_CARD = "CARD"

PAYMENT_METHODS = (PAYMENT_METHOD_CASH, PAYMENT_METHOD_BANK_TRANSFER, PAYMENT_METHOD_CARD)


class Sale(db.Model):
    """
    Sale transaction header.

    customer_name is a snapshot taken when the sale is written; renaming the
    customer later does not change it. Items are created together with the
    sale and never edited afterwards.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_sales_transaction_id"),
        db.Index("ix_sales_customer_date", "customer_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-assigned identifier (e.g., "TXN-1042")
    transaction_id = db.Column(db.String(64), nullable=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(128), nullable=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_type = db.Column(db.String(16), nullable=False, index=True)  # CASH, CREDIT

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
        lazy=True,
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "total_amount_cents": self.total_amount_cents,
            "payment_type": self.payment_type,
            "transaction_date": to_utc_z(self.transaction_date),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Line item of a sale. product_name is frozen at sale time."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(128), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # quantity * unit_price_cents as computed by the caller; not re-verified
    total_price_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class DebtPayment(db.Model):
    """
    Payment against a customer's outstanding credit.

    Append-only: there is no update or delete path. sale_id only tags which
    transaction the customer meant to settle; it does not change the sale.
    """
    __tablename__ = "debt_payments"
    __table_args__ = (
        db.Index("ix_debt_payments_customer_date", "customer_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="SET NULL"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)  # CASH, BANK_TRANSFER, CARD
    notes = db.Column(db.String(255), nullable=True)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer", backref=db.backref("debt_payments", lazy=True))
    sale = db.relationship("Sale")

    def to_dict(self, include_related: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "payment_date": to_utc_z(self.payment_date),
        }
        if include_related:
            data["customer"] = (
                {"name": self.customer.name, "credit_balance_cents": self.customer.credit_balance_cents}
                if self.customer else None
            )
            data["sale_transaction_id"] = self.sale.transaction_id if self.sale else None
        return data
