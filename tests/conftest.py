import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
import tempfile
import os
from datetime import datetime, timedelta, timezone

from src.infrastructure.persistence.models.models import (
    Base, Location, ParkingSpot, Reservation as ORMReservation
)
from src.infrastructure.persistence.locks import KeyedLockRegistry
from src.infrastructure.persistence.sqlalchemy_repositories.sqlalchemy_repositories import (
    SQLAlchemyLocationRepository,
    SQLAlchemyParkingSpotRepository,
    SQLAlchemyReservationRepository,
    SQLAlchemyAdditionalChargeRepository,
)
from src.infrastructure.payments.simulated_gateway import SimulatedPaymentGateway
from src.application.services.reservation_service import ReservationService
from src.application.services.billing_service import BillingService
from src.application.services.location_service import LocationService
from src.application.services.sweep_service import SweepService
from src.config.settings_env import Settings


@pytest.fixture(scope="function")
async def test_db():
    """Create a test database for each test function."""
    # Create a temporary file for the test database
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp_file:
        test_db_path = tmp_file.name

    # NullPool gives every session its own connection, like separate requests
    test_db_url = f"sqlite+aiosqlite:///{test_db_path}"
    engine = create_async_engine(
        test_db_url,
        poolclass=NullPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    yield async_session_maker

    await engine.dispose()
    os.unlink(test_db_path)


@pytest.fixture
async def db_session(test_db):
    """Create a database session for a test."""
    async with test_db() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings():
    """Provide test settings."""
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        ASYNC_DATABASE_URL="sqlite+aiosqlite:///:memory:",
        MAX_RESERVATION_HOURS=24,
        MAX_ADVANCE_DAYS=30,
        BASE_FEE=100.0,
    )


@pytest.fixture
def locks():
    """Fresh lock registry, bound to this test's event loop."""
    return KeyedLockRegistry()


class RecordingPaymentGateway(SimulatedPaymentGateway):
    """Simulated gateway that keeps every request it was sent."""

    def __init__(self, decline: bool = False):
        super().__init__(decline=decline)
        self.requests = []

    async def charge(self, request):
        self.requests.append(request)
        return await super().charge(request)


@pytest.fixture
def gateway():
    return RecordingPaymentGateway()


@pytest.fixture
async def location_with_spots(db_session: AsyncSession):
    """One location with three spots at 20/h."""
    location = Location(name="Estacionamiento Centro", address="Av. Juárez 123, Centro")
    location.parking_spots = [
        ParkingSpot(spot_number=str(number), price=20.0, is_available=True)
        for number in range(1, 4)
    ]
    db_session.add(location)
    await db_session.commit()
    return location


@pytest.fixture
async def spot(db_session: AsyncSession, location_with_spots):
    return await db_session.get(ParkingSpot, location_with_spots.parking_spots[0].id)


@pytest.fixture
def tomorrow_at():
    """Aware UTC datetime tomorrow at the given hour."""
    def _at(hour: int, minute: int = 0) -> datetime:
        base = (datetime.now(timezone.utc) + timedelta(days=1)).replace(second=0, microsecond=0)
        return base.replace(hour=hour, minute=minute)
    return _at


@pytest.fixture
def make_reservation(db_session: AsyncSession):
    """Insert a reservation row directly, bypassing the service checks."""
    counter = {"n": 0}

    async def _make(spot_id: int, start_time: datetime, end_time: datetime, status: str = "CONFIRMED", **kwargs):
        counter["n"] += 1
        reservation = ORMReservation(
            parking_spot_id=spot_id,
            start_time=start_time,
            end_time=end_time,
            status=status,
            price=kwargs.pop("price", 120.0),
            qr_code=kwargs.pop("qr_code", f"qr-{counter['n']}"),
            **kwargs,
        )
        db_session.add(reservation)
        await db_session.commit()
        return reservation

    return _make


def build_reservation_service(session: AsyncSession, locks: KeyedLockRegistry) -> ReservationService:
    return ReservationService(
        parking_spot_repo=SQLAlchemyParkingSpotRepository(session),
        reservation_repo=SQLAlchemyReservationRepository(session),
        location_repo=SQLAlchemyLocationRepository(session),
        locks=locks,
    )


@pytest.fixture
def reservation_service_factory(locks):
    """Services on separate sessions that share one lock registry."""
    return lambda session: build_reservation_service(session, locks)


@pytest.fixture
async def reservation_service(db_session, locks):
    """Create a ReservationService instance with test database session."""
    return build_reservation_service(db_session, locks)


@pytest.fixture
async def billing_service(db_session, locks, gateway):
    """Create a BillingService instance with test database session."""
    return BillingService(
        reservation_repo=SQLAlchemyReservationRepository(db_session),
        charge_repo=SQLAlchemyAdditionalChargeRepository(db_session),
        payment_gateway=gateway,
        locks=locks,
    )


@pytest.fixture
async def location_service(db_session):
    return LocationService(
        location_repo=SQLAlchemyLocationRepository(db_session),
        parking_spot_repo=SQLAlchemyParkingSpotRepository(db_session),
    )


@pytest.fixture
async def sweep_service(db_session, locks):
    return SweepService(
        parking_spot_repo=SQLAlchemyParkingSpotRepository(db_session),
        reservation_repo=SQLAlchemyReservationRepository(db_session),
        locks=locks,
    )
