"""
Balance operation and catalogue tests.

Verifies:
- Atomic stock/credit adjustments, including the zero clamp on credit
- Missing rows and non-positive amounts are rejected
- Stock and credit cannot be edited directly through product/customer updates
- Referenced products and customers cannot be deleted
"""

import pytest

from bevpos.models import Customer, Product
from bevpos.services import balance_service, customers_service, products_service, sales_service
from bevpos.services.balance_service import BalanceError
from bevpos.validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

from helpers import item_for, stock_of, credit_of


class TestBalanceOperations:

    def test_stock_up_and_down(self, db_session, water):
        balance_service.decrease_product_stock(water.id, 8)
        assert stock_of(water.id) == 42

        balance_service.increase_product_stock(water.id, 3)
        assert stock_of(water.id) == 45

    def test_stock_cannot_go_negative(self, db_session, water):
        with pytest.raises(BalanceError):
            balance_service.decrease_product_stock(water.id, 51)
        assert stock_of(water.id) == 50

    def test_credit_increase_and_reduce(self, db_session, alice):
        balance_service.increase_customer_credit(alice.id, 10000)
        balance_service.reduce_customer_credit(alice.id, 6000)
        assert credit_of(alice.id) == 4000

    def test_credit_reduction_clamps_at_zero(self, db_session, alice):
        balance_service.increase_customer_credit(alice.id, 4000)
        balance_service.reduce_customer_credit(alice.id, 10000)
        assert credit_of(alice.id) == 0

    @pytest.mark.parametrize("op", [
        balance_service.decrease_product_stock,
        balance_service.increase_product_stock,
    ])
    def test_missing_product(self, db_session, op):
        with pytest.raises(BalanceError, match="not found"):
            op(98765, 1)

    @pytest.mark.parametrize("op", [
        balance_service.increase_customer_credit,
        balance_service.reduce_customer_credit,
    ])
    def test_missing_customer(self, db_session, op):
        with pytest.raises(BalanceError, match="not found"):
            op(98765, 100)

    @pytest.mark.parametrize("amount", [0, -5, None])
    def test_non_positive_amounts_rejected(self, db_session, water, alice, amount):
        with pytest.raises(BalanceError):
            balance_service.increase_product_stock(water.id, amount)
        with pytest.raises(BalanceError):
            balance_service.increase_customer_credit(alice.id, amount)
        assert stock_of(water.id) == 50
        assert credit_of(alice.id) == 0


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "stock"},
    required_on_create={"name", "category"},
)


class TestProducts:

    def test_create_from_validated_payload(self, db_session):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Sparkling 330ml ", "category": "Drinks", "stock": "24"},
            policy=PRODUCT_POLICY,
            partial=False,
        )
        enforce_rules_product(patch)
        product = products_service.create_product(patch=patch)

        assert product.name == "Sparkling 330ml"
        assert product.stock == 24

    def test_stock_defaults_to_zero(self, db_session):
        product = products_service.create_product(patch={"name": "Ice 2kg", "category": "Water"})
        assert product.stock == 0

    @pytest.mark.parametrize("payload,message", [
        ({"name": "X"}, "Missing required fields"),
        ({"name": "X", "category": "Snacks"}, "category must be one of"),
        ({"name": "X", "category": "Water", "stock": -1}, "stock must be >= 0"),
        ({"name": "X", "category": "Water", "stock": 2.5}, "not a decimal"),
        ({"name": "", "category": "Water"}, "name cannot be blank"),
        ({"name": "X", "category": "Water", "price": 100}, "Field not allowed"),
    ])
    def test_invalid_payloads(self, db_session, payload, message):
        with pytest.raises(ValidationError, match=message):
            patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
            enforce_rules_product(patch)

    def test_update_renames_but_refuses_stock(self, db_session, water):
        products_service.update_product(water.id, patch={"name": "Water 0.5L"})
        assert products_service.get_product(water.id).name == "Water 0.5L"

        with pytest.raises(ValidationError, match="restock"):
            products_service.update_product(water.id, patch={"stock": 500})
        assert stock_of(water.id) == 50

    def test_restock(self, db_session, water):
        product = products_service.restock_product(water.id, 25)
        assert product.stock == 75

        with pytest.raises(ValidationError):
            products_service.restock_product(water.id, 0)
        with pytest.raises(NotFoundError):
            products_service.restock_product(12345, 5)

    def test_low_stock_listing(self, db_session, water, cola):
        balance_service.decrease_product_stock(water.id, 50)
        balance_service.decrease_product_stock(cola.id, 12)
        products_service.create_product(patch={"name": "Juice 1L", "category": "Drinks", "stock": 5})

        assert [p.name for p in products_service.list_low_stock()] == ["Juice 1L", "Cola 330ml"]

    def test_delete_unreferenced(self, db_session, water):
        water_id = water.id
        products_service.delete_product(water_id)
        with pytest.raises(NotFoundError):
            products_service.get_product(water_id)

    def test_delete_sold_product_refused(self, db_session, water, alice):
        sales_service.create_sale(
            transaction_id="TXN-D1",
            customer_id=alice.id,
            customer_name=alice.name,
            total_amount_cents=100,
            payment_type="CASH",
            items=[item_for(water, 1, 100)],
        )
        with pytest.raises(ConflictError):
            products_service.delete_product(water.id)


class TestCustomers:

    def test_create_always_starts_at_zero(self, db_session):
        customer = customers_service.create_customer(
            patch={"name": "Dana", "phone": "0321-0000000", "credit_balance_cents": 9999}
        )
        assert customer.credit_balance_cents == 0
        assert customer.address is None

    def test_update_refuses_credit(self, db_session, alice):
        customers_service.update_customer(alice.id, patch={"address": "Shop 4, Main Bazaar"})
        assert customers_service.get_customer(alice.id).address == "Shop 4, Main Bazaar"

        with pytest.raises(ValidationError):
            customers_service.update_customer(alice.id, patch={"credit_balance_cents": 0})

    def test_with_credit_listing(self, db_session, alice, bob):
        balance_service.increase_customer_credit(alice.id, 500)
        balance_service.increase_customer_credit(bob.id, 900)

        assert [c.name for c in customers_service.list_customers_with_credit()] == ["Bob", "Alice"]
        assert [c.name for c in customers_service.list_customers()] == ["Alice", "Bob"]

    def test_delete_unreferenced(self, db_session, bob):
        bob_id = bob.id
        customers_service.delete_customer(bob_id)
        assert db_session.get(Customer, bob_id) is None

    def test_delete_with_history_refused(self, db_session, water, alice):
        sales_service.create_sale(
            transaction_id="TXN-D2",
            customer_id=alice.id,
            customer_name=alice.name,
            total_amount_cents=100,
            payment_type="CREDIT",
            items=[item_for(water, 1, 100)],
        )
        with pytest.raises(ConflictError):
            customers_service.delete_customer(alice.id)

    def test_missing_customer(self, db_session):
        with pytest.raises(NotFoundError):
            customers_service.get_customer(31337)
