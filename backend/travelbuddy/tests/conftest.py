"""
Shared test configuration.
Runs every test against an in-memory SQLite database and overrides get_db,
so no MySQL server is needed.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"

from datetime import datetime
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import travelbuddy.models  # noqa: F401
from travelbuddy.core.security import get_password_hash, create_access_token
from travelbuddy.db.base import Base
from travelbuddy.db.session import get_db
from travelbuddy.main import app
from travelbuddy.models.coupon import Coupon, DiscountType
from travelbuddy.models.travel_plan import TravelPlan, TravelType, PlanStatus
from travelbuddy.models.user import User, UserRole

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"


@pytest.fixture
def db():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """HTTP test client sharing the test database session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(name=None, email=None, role=UserRole.USER, **kwargs):
        counter["n"] += 1
        user = User(
            name=name or f"Traveller {counter['n']}",
            email=email or f"traveller{counter['n']}@example.com",
            hashed_password=get_password_hash(PASSWORD),
            role=role,
            **kwargs
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_plan(db):
    def _make_plan(host, **kwargs):
        values = {
            "title": "Summer in Lisbon",
            "destination_country": "Portugal",
            "destination_city": "Lisbon",
            "start_date": datetime(2025, 6, 1),
            "end_date": datetime(2025, 6, 10),
            "travel_type": TravelType.FRIENDS,
            "is_public": True,
            "max_participants": None,
            "participants_count": 0,
            "manual_status": PlanStatus.OPEN,
        }
        values.update(kwargs)
        tags = values.pop("tags", [])
        plan = TravelPlan(host_id=host.id, **values)
        plan.tags = tags
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan

    return _make_plan


@pytest.fixture
def make_coupon(db):
    def _make_coupon(code="SAVE20", **kwargs):
        values = {
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": 20,
            "expires_at": datetime(2099, 1, 1),
            "is_active": True,
            "used_count": 0,
        }
        values.update(kwargs)
        coupon = Coupon(code=code, **values)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make_coupon


def auth_headers(user) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def password():
    return PASSWORD
