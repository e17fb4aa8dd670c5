# Overview: Cart validation and pricing done before the sale workflow runs.

"""
Checkout preparation.

Everything here happens before any write: a rejected cart never touches the
database. The result carries the snapshots (customer name, product names)
and the computed totals that sales_service.create_sale stores as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..extensions import db
from ..models import Customer, Product, PAYMENT_TYPES
from ..validation import ValidationError, parse_amount_cents, parse_positive_int
from .sales_service import SaleItemInput


@dataclass
class Checkout:
    transaction_id: str
    customer_id: int
    customer_name: str
    payment_type: str
    items: list[SaleItemInput] = field(default_factory=list)

    @property
    def total_amount_cents(self) -> int:
        return sum(item.total_price_cents for item in self.items)

    def as_sale_kwargs(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "total_amount_cents": self.total_amount_cents,
            "payment_type": self.payment_type,
            "items": list(self.items),
        }


def build_checkout(
    *,
    transaction_id,
    customer_id,
    payment_type,
    lines,
) -> Checkout:
    """
    Validate a cart and price it.

    lines: [{"product_id", "quantity", "unit_price_cents"}, ...]
    Quantities for the same product are summed before the stock check, so
    two lines of 15 against 20 in stock are rejected.
    """
    if transaction_id is None or not str(transaction_id).strip():
        raise ValidationError("transaction_id is required")
    transaction_id = str(transaction_id).strip()
    if len(transaction_id) > 64:
        raise ValidationError("transaction_id exceeds max length 64")

    if customer_id is None:
        raise ValidationError("customer_id is required")
    customer = db.session.get(Customer, parse_positive_int(customer_id, "customer_id"))
    if customer is None:
        raise ValidationError("Customer not found")

    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of: {', '.join(PAYMENT_TYPES)}")

    if not isinstance(lines, list) or not lines:
        raise ValidationError("Cart is empty")

    checkout = Checkout(
        transaction_id=transaction_id,
        customer_id=customer.id,
        customer_name=customer.name,
        payment_type=payment_type,
    )

    in_cart: dict[int, int] = {}
    for index, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"Line {index} must be an object")

        product_id = parse_positive_int(line.get("product_id"), f"lines[{index}].product_id")
        quantity = parse_positive_int(line.get("quantity"), f"lines[{index}].quantity")
        unit_price_cents = parse_amount_cents(line.get("unit_price_cents"), f"lines[{index}].unit_price_cents")

        product = db.session.get(Product, product_id)
        if product is None:
            raise ValidationError(f"Product {product_id} not found")

        wanted = in_cart.get(product_id, 0) + quantity
        if wanted > product.stock:
            raise ValidationError(
                f"Only {product.stock} units of {product.name} available "
                f"({in_cart.get(product_id, 0)} already in cart)"
            )
        in_cart[product_id] = wanted

        checkout.items.append(SaleItemInput(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_price_cents=quantity * unit_price_cents,
        ))

    return checkout
