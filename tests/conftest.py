"""Test configuration and fixtures"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from shop_reservations.main import app
from shop_reservations.database import Base, get_db
from shop_reservations.actors import Admin
from shop_reservations.models import (
    Shop,
    User,
    AppUser,
    ReservationService,
    ReservationResource,
    ResourceServiceLink,
    AvailabilityRule,
)
from shop_reservations.models.user import UserRole
from shop_reservations.api.auth import create_access_token, create_app_user_token
from shop_reservations.services.time_slots import combine_date_and_time


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday 2025-03-03 08:00 in Ljubljana (CET, UTC+1)
NOW = datetime(2025, 3, 3, 7, 0)
# The Monday a week later, well inside the booking window
MONDAY = date(2025, 3, 10)


def local(day: date, wall_time: str) -> datetime:
    """Shop-local wall time on ``day`` as naive UTC"""
    return combine_date_and_time(day, wall_time)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def admin():
    return Admin(user_id=uuid4())


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def shop(test_db):
    """Create a test shop with reservations enabled and default settings"""
    shop = Shop(
        id=uuid4(),
        name="Test Barbershop",
        reservations_enabled=True,
        reservation_settings={},
    )
    test_db.add(shop)
    await test_db.commit()
    return shop


@pytest.fixture
async def other_shop(test_db):
    shop = Shop(id=uuid4(), name="Other Shop", reservations_enabled=True, reservation_settings={})
    test_db.add(shop)
    await test_db.commit()
    return shop


@pytest.fixture
async def app_user(test_db):
    user = AppUser(
        id=uuid4(),
        first_name="Ana",
        last_name="Kranjc",
        email="ana@example.com",
        phone_number="+38640123456",
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def haircut(test_db, shop):
    """60 minute service that needs a barber"""
    service = ReservationService(
        id=uuid4(),
        shop_id=shop.id,
        name="Haircut",
        duration_minutes=60,
        price=Decimal("20.00"),
        requires_resource=True,
        sort_order=0,
    )
    test_db.add(service)
    await test_db.commit()
    return service


@pytest.fixture
async def shared_table(test_db, shop):
    """Shop-level service with room for four people at once"""
    service = ReservationService(
        id=uuid4(),
        shop_id=shop.id,
        name="Shared table",
        type="table",
        duration_minutes=60,
        capacity=4,
        requires_resource=False,
        sort_order=1,
    )
    test_db.add(service)
    await test_db.commit()
    return service


@pytest.fixture
async def barbers(test_db, shop, haircut):
    """Two barbers, both linked to the haircut service"""
    ana = ReservationResource(id=uuid4(), shop_id=shop.id, name="Ana", type="staff", sort_order=0)
    bojan = ReservationResource(id=uuid4(), shop_id=shop.id, name="Bojan", type="staff", sort_order=1)
    test_db.add_all([ana, bojan])
    await test_db.flush()

    test_db.add_all([
        ResourceServiceLink(id=uuid4(), resource_id=ana.id, service_id=haircut.id),
        ResourceServiceLink(id=uuid4(), resource_id=bojan.id, service_id=haircut.id),
    ])
    await test_db.commit()
    return ana, bojan


@pytest.fixture
async def monday_hours(test_db, shop):
    """Shop-level rule: Mondays 09:00-11:00"""
    rule = AvailabilityRule(id=uuid4(), shop_id=shop.id, day_of_week=1, start_time="09:00", end_time="11:00")
    test_db.add(rule)
    await test_db.commit()
    return rule


@pytest.fixture
async def owner(test_db, shop):
    """Shop owner dashboard user"""
    user = User(
        id=uuid4(),
        shop_id=shop.id,
        email="owner@barbershop.si",
        hashed_password="not-used",
        full_name="Shop Owner",
        role=UserRole.SHOP_OWNER,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def client(test_db):
    """Create test client with the test session injected"""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def owner_client(client, owner):
    """Client authenticated as the shop owner"""
    client.headers["Authorization"] = f"Bearer {create_access_token(owner)}"
    return client


@pytest.fixture
async def customer_client(client, app_user):
    """Client authenticated as an app user"""
    client.headers["Authorization"] = f"Bearer {create_app_user_token(app_user)}"
    return client
