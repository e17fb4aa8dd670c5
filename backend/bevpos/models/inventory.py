from __future__ import annotations

from ..extensions import db
from bevpos.time_utils import to_utc_z


CATEGORY_WATER = "Water"
CATEGORY_DRINKS = "Drinks"

PRODUCT_CATEGORIES = (CATEGORY_WATER, CATEGORY_DRINKS)


class Product(db.Model):
    """
    Sellable product with an on-hand stock count.

    Stock is authoritative mutable state. It moves only through the
    increment/decrement operations in balance_service (sales, deletions,
    restocks); product edits never write it directly.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
        }
