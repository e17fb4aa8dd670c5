"""
Checkout validation tests.

A rejected cart must not write anything, so every failure here is checked
against an untouched database.
"""

import pytest

from bevpos.models import Sale
from bevpos.services.checkout_service import build_checkout
from bevpos.validation import ValidationError

from helpers import stock_of


def _line(product, quantity, unit_price_cents=5000):
    return {"product_id": product.id, "quantity": quantity, "unit_price_cents": unit_price_cents}


class TestBuildCheckout:

    def test_prices_cart_and_snapshots_names(self, db_session, water, cola, alice):
        checkout = build_checkout(
            transaction_id=" TXN-100 ",
            customer_id=alice.id,
            payment_type="CREDIT",
            lines=[_line(water, 2, 5000), _line(cola, 3, 1500)],
        )

        assert checkout.transaction_id == "TXN-100"
        assert checkout.customer_name == "Alice"
        assert [i.product_name for i in checkout.items] == ["Water 500ml", "Cola 330ml"]
        assert [i.total_price_cents for i in checkout.items] == [10000, 4500]
        assert checkout.total_amount_cents == 14500

        kwargs = checkout.as_sale_kwargs()
        assert kwargs["total_amount_cents"] == 14500
        assert kwargs["payment_type"] == "CREDIT"

    def test_string_ids_accepted(self, db_session, water, alice):
        checkout = build_checkout(
            transaction_id="TXN-101",
            customer_id=str(alice.id),
            payment_type="CASH",
            lines=[{"product_id": str(water.id), "quantity": "2", "unit_price_cents": "5000"}],
        )
        assert checkout.total_amount_cents == 10000

    def test_free_items_allowed(self, db_session, water, alice):
        checkout = build_checkout(
            transaction_id="TXN-102",
            customer_id=alice.id,
            payment_type="CASH",
            lines=[_line(water, 1, 0)],
        )
        assert checkout.total_amount_cents == 0

    def test_cumulative_quantity_checked_against_stock(self, db_session, water, alice):
        with pytest.raises(ValidationError) as exc_info:
            build_checkout(
                transaction_id="TXN-103",
                customer_id=alice.id,
                payment_type="CASH",
                lines=[_line(water, 30), _line(water, 21)],
            )

        assert str(exc_info.value) == "Only 50 units of Water 500ml available (30 already in cart)"
        assert stock_of(water.id) == 50
        assert db_session.query(Sale).count() == 0

    def test_exact_stock_allowed(self, db_session, water, alice):
        checkout = build_checkout(
            transaction_id="TXN-104",
            customer_id=alice.id,
            payment_type="CASH",
            lines=[_line(water, 25), _line(water, 25)],
        )
        assert sum(i.quantity for i in checkout.items) == 50

    @pytest.mark.parametrize("transaction_id", [None, "", "   ", "X" * 65])
    def test_bad_transaction_id(self, db_session, water, alice, transaction_id):
        with pytest.raises(ValidationError, match="transaction_id"):
            build_checkout(
                transaction_id=transaction_id,
                customer_id=alice.id,
                payment_type="CASH",
                lines=[_line(water, 1)],
            )

    def test_unknown_customer(self, db_session, water):
        with pytest.raises(ValidationError, match="Customer not found"):
            build_checkout(
                transaction_id="TXN-105",
                customer_id=424242,
                payment_type="CASH",
                lines=[_line(water, 1)],
            )

    def test_missing_customer(self, db_session, water):
        with pytest.raises(ValidationError, match="customer_id is required"):
            build_checkout(
                transaction_id="TXN-106",
                customer_id=None,
                payment_type="CASH",
                lines=[_line(water, 1)],
            )

    def test_unknown_payment_type(self, db_session, water, alice):
        with pytest.raises(ValidationError, match="payment_type"):
            build_checkout(
                transaction_id="TXN-107",
                customer_id=alice.id,
                payment_type="IOU",
                lines=[_line(water, 1)],
            )

    @pytest.mark.parametrize("lines", [None, [], "water"])
    def test_empty_cart(self, db_session, alice, lines):
        with pytest.raises(ValidationError, match="Cart is empty"):
            build_checkout(
                transaction_id="TXN-108",
                customer_id=alice.id,
                payment_type="CASH",
                lines=lines,
            )

    @pytest.mark.parametrize("line", [
        {"quantity": 1, "unit_price_cents": 100},
        {"product_id": 1, "quantity": 0, "unit_price_cents": 100},
        {"product_id": 1, "quantity": 1.5, "unit_price_cents": 100},
        {"product_id": 1, "quantity": 1, "unit_price_cents": -1},
        {"product_id": 1, "quantity": 1},
    ])
    def test_malformed_lines(self, db_session, water, alice, line):
        with pytest.raises(ValidationError, match=r"lines\[1\]"):
            build_checkout(
                transaction_id="TXN-109",
                customer_id=alice.id,
                payment_type="CASH",
                lines=[line],
            )

    def test_unknown_product(self, db_session, alice):
        with pytest.raises(ValidationError, match="Product 777 not found"):
            build_checkout(
                transaction_id="TXN-110",
                customer_id=alice.id,
                payment_type="CASH",
                lines=[{"product_id": 777, "quantity": 1, "unit_price_cents": 100}],
            )
