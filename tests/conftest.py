"""Shared fixtures: an in-memory database per test, seeded catalog, factories and an API client."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.core.database import Base, get_db
from marketplace.core.security import create_access_token, get_password_hash
from marketplace.features.account.model import Customer, Provider
from marketplace.features.admin.model import Admin
from marketplace.features.appointment.model import Appointment, AvailabilitySlot
from marketplace.features.rating.model import Rating
from marketplace.features.violation_type.service import ViolationTypeService
from marketplace.main import app
from marketplace.models import registry  # noqa: F401
from marketplace.models.enums import AppointmentStatus, RatedBy

NOW = datetime(2024, 5, 15, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autoflush=False, bind=engine)
    session = TestingSession()
    ViolationTypeService.initialize_violation_types(session)
    yield session
    session.close()


@pytest.fixture
def now():
    return NOW


def _save(db, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def make_customer(db):
    counter = {"n": 0}

    def _make(points: int = 100, **fields):
        counter["n"] += 1
        fields.setdefault("name", f"Customer {counter['n']}")
        fields.setdefault("email", f"customer{counter['n']}@example.com")
        fields.setdefault("is_suspended", points <= 50)
        return _save(db, Customer(penalty_points=points, **fields))

    return _make


@pytest.fixture
def make_provider(db):
    counter = {"n": 0}

    def _make(points: int = 100, **fields):
        counter["n"] += 1
        fields.setdefault("name", f"Provider {counter['n']}")
        fields.setdefault("email", f"provider{counter['n']}@example.com")
        fields.setdefault("is_suspended", points <= 50)
        return _save(db, Provider(penalty_points=points, **fields))

    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def provider(make_provider):
    return make_provider()


@pytest.fixture
def make_appointment(db):
    def _make(customer, provider, status=AppointmentStatus.SCHEDULED, scheduled_date=None, **fields):
        return _save(
            db,
            Appointment(
                customer_id=customer.id,
                provider_id=provider.id,
                status=status,
                scheduled_date=scheduled_date or NOW + timedelta(days=3),
                **fields,
            ),
        )

    return _make


@pytest.fixture
def make_rating(db):
    def _make(customer, provider, value, rated_by=RatedBy.CUSTOMER, created_at=None, appointment=None):
        return _save(
            db,
            Rating(
                customer_id=customer.id,
                provider_id=provider.id,
                appointment_id=appointment.id if appointment else None,
                rated_by=rated_by,
                rating_value=value,
                created_at=created_at or NOW,
            ),
        )

    return _make


@pytest.fixture
def make_slot(db):
    def _make(provider, day_of_week, start_time="09:00", end_time="10:00", is_active=True):
        return _save(
            db,
            AvailabilitySlot(
                provider_id=provider.id,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
                is_active=is_active,
            ),
        )

    return _make


@pytest.fixture
def admin(db):
    return _save(db, Admin(username="root", password_hash=get_password_hash("s3cret-pass"), is_active=True))


@pytest.fixture
def auth_headers():
    def _headers(kind: str, subject_id: int) -> dict:
        token = create_access_token({"sub": str(subject_id), "kind": kind})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()
