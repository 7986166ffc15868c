"""Shared test fixtures for the sales pipeline test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite)
- db_session: clean database per test (tables created/dropped)
- seed_data: users, a client, an active project/block/lot and an open lead
- make_quotation / make_reservation: factories for the deal chain
"""

from datetime import date, datetime, timezone

import pytest

from landsales import create_app
from landsales.extensions import db as _db
from landsales.models.client import Client
from landsales.models.project import Block, Project
from landsales.models.lot import Lot
from landsales.models.user import User
from landsales.services import lead_service, quotation_service, reservation_service

# Fixed clock for tests that care about dates.
NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """The fixed clock most tests run at."""
    return NOW


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def seed_data(db_session):
    """Seed an admin, a supervisor, two advisors, a client and inventory.

    Returns a dict with all created objects for easy access in tests.
    """
    # --- Users ---
    admin = User(email="admin@landsales.local", full_name="Admin", role="admin")
    supervisor = User(email="sup@landsales.local", full_name="Sofia Supervisor", role="supervisor")
    advisor = User(email="ana@landsales.local", full_name="Ana Advisor", role="sales_advisor")
    other_advisor = User(email="luis@landsales.local", full_name="Luis Advisor", role="sales_advisor")
    db_session.add_all([admin, supervisor, advisor, other_advisor])

    # --- Client ---
    client = Client(
        name="Carla Compradora",
        dni="45678912",
        phone_number="987654321",
        email="carla@example.com",
        client_type="natural",
    )
    db_session.add(client)

    # --- Inventory ---
    project = Project(name="Los Olivos", location="Piura", currency="USD")
    db_session.add(project)
    db_session.flush()

    block = Block(name="A", project_id=project.id)
    db_session.add(block)
    db_session.flush()

    lot = Lot(block_id=block.id, lot_number="12", area=100, price=1500)
    db_session.add(lot)
    db_session.flush()

    # --- Lead ---
    lead = lead_service.create_lead(
        client.id, "company", advisor_id=advisor.id, project_id=project.id, now=NOW
    )
    db_session.commit()

    return {
        "admin": admin,
        "supervisor": supervisor,
        "advisor": advisor,
        "other_advisor": other_advisor,
        "client": client,
        "project": project,
        "block": block,
        "lot": lot,
        "lead": lead,
    }


@pytest.fixture
def make_quotation(seed_data, db_session):
    """Quote the seeded lot. Defaults: 1500 price, 20% down, 12 months -> 1200 financed."""

    def _make(months_financed=12, down_payment=20, **kwargs):
        kwargs.setdefault("quotation_date", date(2026, 1, 15))
        quotation = quotation_service.create_quotation(
            seed_data["lead"].id,
            seed_data["lot"].id,
            seed_data["advisor"].id,
            months_financed,
            down_payment,
            now=NOW,
            **kwargs,
        )
        db_session.commit()
        return quotation

    return _make


@pytest.fixture
def make_reservation(make_quotation, db_session):
    """Open an issued reservation (separation amount 500 by default)."""

    def _make(amount=500, quotation=None, **kwargs):
        quotation = quotation or make_quotation()
        reservation = reservation_service.create_reservation(
            quotation.id, amount, "USD", "bank_transfer", now=NOW, **kwargs
        )
        db_session.commit()
        return reservation

    return _make
