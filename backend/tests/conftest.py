"""
Pytest fixtures for shopsettle backend tests.

Provides test database setup, tenant fixtures, staff with commission rates,
notification sinks and the test client.
"""

import pytest
from shopsettle import create_app
from shopsettle.extensions import db
from shopsettle.errors import NotificationError
from shopsettle.models import Organization, Employee, CommissionRate, Discount


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEGACY_NOTES_TOKENS': True,
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
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Northside Auto", code="NORTH", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Harbor Customs", code="HARBOR", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


def make_employee(session, org, username, role, full_name=None):
    employee = Employee(org_id=org.id, username=username, role=role, full_name=full_name, is_active=True)
    session.add(employee)
    session.commit()
    return employee


@pytest.fixture(scope='function')
def owner_a(db_session, org_a):
    return make_employee(db_session, org_a, "olivia", "owner", "Olivia Owner")


@pytest.fixture(scope='function')
def mechanic_a(db_session, org_a):
    return make_employee(db_session, org_a, "mike", "mechanic", "Mike Wrench")


@pytest.fixture(scope='function')
def apprentice_a(db_session, org_a):
    """Apprentice with no configured commission rate."""
    return make_employee(db_session, org_a, "andy", "apprentice")


@pytest.fixture(scope='function')
def owner_b(db_session, org_b):
    return make_employee(db_session, org_b, "bella", "owner")


@pytest.fixture(scope='function')
def rates_a(db_session, org_a):
    """Mechanic earns 10%, owner 5%; apprentice has no rate."""
    rows = [
        CommissionRate(org_id=org_a.id, role="mechanic", rate_bps=1000),
        CommissionRate(org_id=org_a.id, role="owner", rate_bps=500),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture(scope='function')
def discount_10(db_session, org_a):
    discount = Discount(org_id=org_a.id, name="Ten percent", percentage_bps=1000)
    db_session.add(discount)
    db_session.commit()
    return discount


class RecordingSink:
    """Notification sink that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def send(self, event):
        self.events.append(event)


class FailingSink:
    def __init__(self):
        self.attempts = 0

    def send(self, event):
        self.attempts += 1
        raise NotificationError("Sales webhook delivery failed", details={"reason": "timeout"})


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return FailingSink()


def identity_headers(employee) -> dict:
    """Headers the upstream gateway sets for a signed-in employee."""
    return {
        'X-Org-Id': str(employee.org_id),
        'X-Employee-Id': str(employee.id),
    }


def cart(*lines):
    """Build cart items from (name, unit_price_cents, quantity[, profit_cents]) tuples."""
    items = []
    for line in lines:
        item = {"name": line[0], "unit_price_cents": line[1], "quantity": line[2]}
        if len(line) > 3:
            item["profit_cents"] = line[3]
        items.append(item)
    return items


@pytest.fixture
def headers_for():
    return identity_headers


@pytest.fixture
def make_cart():
    return cart
