# backend/bevpos/services/products_service.py
"""
Products Service

Plain CRUD over products. Stock is only ever set on create; afterwards it
moves through balance_service (sales, deletions, restock_product).
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, SaleItem
from ..validation import ConflictError, NotFoundError, ValidationError
from . import balance_service
from .reporting_service import LOW_STOCK_THRESHOLD

PRODUCT_MUTABLE_FIELDS = {"name", "category"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def list_low_stock() -> list[Product]:
    """Products with 1..LOW_STOCK_THRESHOLD units left, scarcest first."""
    return (
        db.session.query(Product)
        .filter(Product.stock > 0, Product.stock <= LOW_STOCK_THRESHOLD)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(*, patch: dict) -> Product:
    """Create product using a validated patch dict."""
    product = Product(
        name=patch["name"],
        category=patch["category"],
        stock=patch.get("stock") or 0,
    )
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    if "stock" in patch:
        raise ValidationError("stock cannot be edited directly; use restock")

    product = get_product(product_id)
    apply_product_patch(product, patch)
    db.session.commit()
    return product


def restock_product(product_id: int, quantity: int) -> Product:
    """Receive new units into stock through the atomic increment."""
    if quantity is None or quantity <= 0:
        raise ValidationError("quantity must be > 0")

    get_product(product_id)
    balance_service.increase_product_stock(product_id, quantity)
    return get_product(product_id)


def delete_product(product_id: int) -> None:
    product = get_product(product_id)

    referenced = db.session.query(SaleItem.id).filter_by(product_id=product_id).first()
    if referenced is not None:
        raise ConflictError("Product has recorded sales and cannot be deleted")

    db.session.delete(product)
    db.session.commit()
