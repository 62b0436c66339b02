"""
Pytest fixtures for the bookkeeper backend tests.

Provides an in-memory application, a test client, a per-test clean database
and a couple of tenant fixtures.
"""

from datetime import datetime

import pytest

from bookkeeper import create_app
from bookkeeper.extensions import db
from bookkeeper.models import BankPaymentRecord, Business, InventoryItem


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOW_STOCK_THRESHOLD': 3,
        'DEFAULT_DATE_RANGE': '3M',
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def business(db_session):
    """Tenant A."""
    business = Business(name="Corner Shop", preferred_currency="NGN")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def other_business(db_session):
    """Tenant B."""
    business = Business(name="Other Shop", preferred_currency="USD")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def widget(db_session, business):
    """Product with 10 units in stock at 10.00."""
    item = InventoryItem(
        business_id=business.id,
        type="product",
        name="Widget",
        sku="W-1",
        quantity=10,
        selling_price="10.00",
        cost_price="6.00",
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def make_bank_record(db_session, business):
    """Factory for unprocessed bank statement lines."""
    def _make(amount="50.00", record_type="money-in", description="Transfer from Ada", beneficiary="Ada Obi", business_id=None):
        record = BankPaymentRecord(
            business_id=business_id or business.id,
            date=datetime(2024, 5, 1, 10, 0),
            type=record_type,
            description=description,
            amount=amount,
            beneficiary_name=beneficiary,
            processed=False,
        )
        db_session.add(record)
        db_session.commit()
        return record
    return _make


@pytest.fixture(scope='function')
def headers(business):
    """Request headers scoping API calls to `business`."""
    return {'X-Business-Id': str(business.id)}
