"""
Test configuration: in-memory SQLite shared through StaticPool, get_db override,
in-memory event bus, executor loop disabled.
"""

import os

# Must be set before parcel_tracker.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["EXECUTOR_ENABLED"] = "false"
os.environ["WEBHOOK_API_KEY"] = ""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from parcel_tracker.database import Base, get_db
from parcel_tracker.main import app
from parcel_tracker.models import Delivery, DeliveryStatus
from parcel_tracker.simulator.config import SimulationConfig
from parcel_tracker.simulator.event_bus import event_bus

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday
CREATED_AT = datetime(2024, 1, 1, 10, 0)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_event_bus():
    event_bus.memory.clear()
    yield


@pytest.fixture
def config() -> SimulationConfig:
    return SimulationConfig(
        origin_company_name="Cargo Flash",
        origin_address=None,
        origin_city="São Paulo",
        origin_state="SP",
        origin_zip=None,
        origin_lat=-23.5505,
        origin_lng=-46.6333,
        min_delivery_days=15,
        max_delivery_days=19,
        update_start_hour=8,
        update_end_hour=18,
        skip_weekends=True,
        days_per_checkpoint=1.5,
        max_checkpoints=12,
    )


@pytest.fixture
def make_delivery():
    """Unsaved Delivery snapshot for the pure scheduler."""
    def _make(**overrides) -> Delivery:
        values = dict(
            id=1,
            tracking_code="CF000000001BR",
            status=DeliveryStatus.PENDING,
            origin_city="São Paulo",
            origin_state="SP",
            origin_lat=-23.5505,
            origin_lng=-46.6333,
            recipient_name="Ana Souza",
            destination_address="Rua das Laranjeiras, 120",
            destination_city="Rio de Janeiro",
            destination_state="RJ",
            estimated_delivery=None,
            created_at=CREATED_AT,
        )
        values.update(overrides)
        return Delivery(**values)

    return _make


@pytest.fixture
def delivery_payload() -> dict:
    return {
        "recipient_name": "Ana Souza",
        "recipient_phone": "11987654321",
        "destination_address": "Rua das Laranjeiras, 120",
        "destination_city": "Rio de Janeiro",
        "destination_state": "rj",
        "package_description": "1x Cafeteira elétrica",
        "package_weight": 2.8,
    }
