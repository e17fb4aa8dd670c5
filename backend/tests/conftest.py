"""
Pytest fixtures for bevpos backend tests.

Provides test database setup, seed records, and test client.
"""

import pytest
from bevpos import create_app
from bevpos.extensions import db
from bevpos.models import Product, Customer


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def water(db_session):
    """Water 500ml with 50 units on hand."""
    product = Product(name="Water 500ml", category="Water", stock=50)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def cola(db_session):
    """Cola 330ml with 30 units on hand."""
    product = Product(name="Cola 330ml", category="Drinks", stock=30)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def alice(db_session):
    """Customer with no outstanding credit."""
    customer = Customer(name="Alice", phone="0300-1234567", credit_balance_cents=0)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def bob(db_session):
    customer = Customer(name="Bob", phone="0311-7654321", credit_balance_cents=0)
    db_session.add(customer)
    db_session.commit()
    return customer

