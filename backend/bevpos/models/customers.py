from __future__ import annotations

from ..extensions import db
from bevpos.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer account with an outstanding credit balance.

    credit_balance_cents grows with CREDIT sales and shrinks with debt
    payments and deletions of CREDIT sales. It never goes below zero.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("credit_balance_cents >= 0", name="ck_customers_credit_non_negative"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    credit_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "credit_balance_cents": self.credit_balance_cents,
            "created_at": to_utc_z(self.created_at),
        }
