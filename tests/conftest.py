"""Test configuration and fixtures"""

import itertools
from datetime import date
from decimal import Decimal
from typing import Dict
from uuid import uuid4

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.deps import get_eligibility_service, get_payment_provider, get_notifier
from app.collaborators.eligibility import EligibilityService
from app.collaborators.notifications import Notifier
from app.collaborators.payments import PaymentProvider, PaymentProviderError
from app.database import Base, build_engine, get_db
from app.models.kitchen import Kitchen, WeeklyAvailability
from app.models.listing import StorageListing, EquipmentListing, DurationUnit, EquipmentAvailability
from app.models.tenant import Tenant
from app.schemas.booking import BookingCreate
from app.schemas.payment import RefundResult, ChargeResult


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 2025-01-06 is a Monday
MONDAY = date(2025, 1, 6)


class FakeEligibility(EligibilityService):
    def __init__(self, eligible: bool = True):
        self.eligible = eligible
        self.calls = []

    async def is_eligible_to_book(self, chef_id, kitchen_id) -> bool:
        self.calls.append((chef_id, kitchen_id))
        return self.eligible


class FakePayments(PaymentProvider):
    """Records calls; flip the flags to simulate processor failures"""

    def __init__(self):
        self.sessions = []
        self.expired = []
        self.refunds = []
        self.refund_keys = []
        self.charges = []
        self.fail_sessions = False
        self.fail_refunds = False
        self.decline_charges = False
        # Awaited while a refund is "at the processor"
        self.on_refund = None
        self._ids = itertools.count(1)

    async def create_payment_session(self, amount_cents: int, currency: str, metadata: Dict[str, str]) -> str:
        if self.fail_sessions:
            raise PaymentProviderError("processor unavailable")
        token = f"cs_test_{next(self._ids)}"
        self.sessions.append((token, amount_cents, currency, metadata))
        return token

    async def expire_payment_session(self, token: str) -> None:
        self.expired.append(token)

    async def refund(self, transaction_id: str, amount_cents: int, idempotency_key=None) -> RefundResult:
        if self.on_refund:
            await self.on_refund()
        if self.fail_refunds:
            raise PaymentProviderError("refund rejected")
        self.refunds.append((transaction_id, amount_cents))
        self.refund_keys.append(idempotency_key)
        return RefundResult(refund_id=f"re_test_{next(self._ids)}", amount_cents=amount_cents, status="succeeded")

    async def charge_penalty(self, customer_ref, amount_cents, currency, metadata) -> ChargeResult:
        self.charges.append((customer_ref, amount_cents, currency, metadata))
        if self.decline_charges:
            return ChargeResult(succeeded=False, failure_reason="card_declined")
        return ChargeResult(charge_id=f"pi_test_{next(self._ids)}", succeeded=True)


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    async def notify(self, event: str, payload: dict) -> None:
        if self.fail:
            raise RuntimeError("webhook down")
        self.events.append((event, payload))


@pytest.fixture
async def db_engine():
    """In-memory database shared by every session of a test"""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    """Session handed to the code under test"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def persist(session_factory):
    """Save rows in their own session so they stay loaded after engine rollbacks"""
    async def _persist(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects[0] if len(objects) == 1 else objects

    return _persist


@pytest.fixture
async def test_tenant(persist):
    """Create a test tenant"""
    return await persist(Tenant(id=uuid4(), name="Test Commissary", timezone="America/St_Johns"))


@pytest.fixture
async def test_kitchen(persist, test_tenant):
    """Kitchen open Monday to Friday 09:00-17:00 at 50.00/hour"""
    kitchen = await persist(Kitchen(
        id=uuid4(),
        tenant_id=test_tenant.id,
        name="Line Kitchen",
        hourly_rate_cents=5000,
        currency="CAD",
        minimum_booking_hours=Decimal("1"),
    ))
    await persist(*[
        WeeklyAvailability(
            kitchen_id=kitchen.id,
            day_of_week=day,
            start_minute=9 * 60,
            end_minute=17 * 60,
        )
        for day in range(1, 6)
    ])
    return kitchen


@pytest.fixture
async def daily_storage(persist, test_kitchen):
    return await persist(StorageListing(
        id=uuid4(),
        kitchen_id=test_kitchen.id,
        name="Cooler Shelf",
        storage_type="cold",
        base_price_cents=1000,
        booking_duration_unit=DurationUnit.DAILY.value,
        minimum_booking_duration=1,
    ))


@pytest.fixture
async def three_day_storage(persist, test_kitchen):
    return await persist(StorageListing(
        id=uuid4(),
        kitchen_id=test_kitchen.id,
        name="Freezer Chest",
        storage_type="freezer",
        base_price_cents=1200,
        booking_duration_unit=DurationUnit.DAILY.value,
        minimum_booking_duration=3,
    ))


@pytest.fixture
async def rental_mixer(persist, test_kitchen):
    return await persist(EquipmentListing(
        id=uuid4(),
        kitchen_id=test_kitchen.id,
        equipment_type="stand mixer",
        availability_type=EquipmentAvailability.RENTAL.value,
        session_rate_cents=2500,
        damage_deposit_cents=10000,
    ))


@pytest.fixture
async def included_oven(persist, test_kitchen):
    return await persist(EquipmentListing(
        id=uuid4(),
        kitchen_id=test_kitchen.id,
        equipment_type="convection oven",
        availability_type=EquipmentAvailability.INCLUDED.value,
    ))


@pytest.fixture
def chef_id():
    return uuid4()


@pytest.fixture
def eligibility():
    return FakeEligibility()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_request(test_kitchen, chef_id):
    """Build a BookingCreate for the test kitchen"""
    def _make(
        start_time="10:00",
        end_time="12:00",
        booking_date=MONDAY,
        storage_items=(),
        equipment_items=(),
        chef=None,
    ):
        return BookingCreate(
            chef_id=chef or chef_id,
            kitchen_id=test_kitchen.id,
            date=booking_date,
            start_time=start_time,
            end_time=end_time,
            storage_items=list(storage_items),
            equipment_items=list(equipment_items),
        )

    return _make


@pytest.fixture
async def client(test_db, eligibility, payments, notifier):
    """Create test client with overridden database and collaborators"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_eligibility_service] = lambda: eligibility
    app.dependency_overrides[get_payment_provider] = lambda: payments
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
