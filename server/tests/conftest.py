"""Test configuration and fixtures."""

import os

# The engine is created at import time, so point it at SQLite before importing the package
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi.exceptions import RequestValidationError
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from booking_engine.core.database import Base, get_db
from booking_engine.engine.resolver import AvailabilityResolver
from booking_engine.models import *  # noqa: F403 - Import all models
from booking_engine.schemas.resource import BookingOption, Resource, SlotTemplate
from tests.support import TODAY, FakeFetcher, FixedClock, month_availability

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def resolver(fetcher, clock):
    return AvailabilityResolver(fetcher, clock=clock)


@pytest.fixture
def sample_resource():
    """Flat-fare resource priced at 100."""
    return Resource(
        id="luxor-west-bank",
        title="Luxor West Bank Day Tour",
        slug="luxor-west-bank-day-tour",
        fare=Decimal("100.00"),
        list_price=Decimal("130.00"),
        available_days=[0, 2, 4, 5],
        slots=[SlotTemplate(time="08:00", capacity=20), SlotTemplate(time="14:00", capacity=12)],
    )


@pytest.fixture
def variant_resource():
    """Resource with a shared and a private fare variant."""
    return Resource(
        id="desert-safari",
        title="Hurghada Desert Safari",
        slug="hurghada-desert-safari",
        fare=Decimal("60.00"),
        booking_options=[
            BookingOption(id="shared", option_type="shared", label="Shared Jeep", fare=Decimal("45.00")),
            BookingOption(id="private", option_type="private", label="Private Jeep", fare=Decimal("80.00")),
        ],
    )


@pytest.fixture
def september_payload():
    """September with open slots today, tomorrow and a sold-out Friday."""
    return month_availability(
        {
            TODAY: [("09:00", 5), ("12:30", 4), ("15:00", 3)],
            date(2025, 9, 11): [("10:00", 8), ("14:00", 6), ("15:00", 2)],
            date(2025, 9, 12): [("10:00", 0), ("14:00", 0)],
            date(2025, 9, 15): [("10:00", 10)],
        },
        fully_booked=[date(2025, 9, 13)],
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create a test FastAPI application."""
    from fastapi import FastAPI

    from booking_engine.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        request_validation_handler,
    )
    from booking_engine.core.middleware import setup_middleware
    from booking_engine.routers import booking, health, metrics, resource

    # Simplified test app without lifespan or instrumentation
    app = FastAPI(
        title="Tour Booking Engine API (Test)",
        version="1.0.0-test",
    )

    setup_middleware(app, enable_logging=True)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(resource.router)
    app.include_router(booking.router)
    app.include_router(metrics.router)

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_resource_data():
    """Resource registration payload: runs Mon, Wed, Fri, Sat with two slots."""
    return {
        "title": "Luxor West Bank Day Tour",
        "slug": "luxor-west-bank-day-tour",
        "fare": "100.00",
        "list_price": "130.00",
        "available_days": [0, 2, 4, 5],
        "slots": [
            {"time": "08:00", "capacity": 20},
            {"time": "2:00 PM", "capacity": 3},
        ],
    }


@pytest.fixture
def sample_booking_data():
    """Operator booking payload for 2 adults and 1 child at fare 100."""
    return {
        "customer": {
            "first_name": "Amira",
            "last_name": "Hassan",
            "email": "amira@example.com",
            "phone": "+20 100 000 0000",
        },
        "schedule": {
            "date": "2025-10-15",
            "time": "14:00",
            "adults": 2,
            "children": 1,
            "infants": 0,
        },
        "pricing": {
            "base_fare": "100.00",
            "subtotal": "250.00",
            "service_fee": "7.50",
            "tax": "12.50",
            "total": "270.00",
            "overridden": False,
        },
        "payment": {"method": "cash", "status": "paid", "reference": None},
        "special_requests": "Vegetarian lunch",
        "hotel_pickup_details": "Steigenberger Nile Palace lobby",
        "internal_notes": "Booked by phone",
    }
