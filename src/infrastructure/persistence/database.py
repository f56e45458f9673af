from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import create_engine
import os

from src.config.settings_env import settings
from src.infrastructure.persistence.models.models import Base
from src.shared.utils import logger

DATABASE_URL = settings.DATABASE_URL
ASYNC_DATABASE_URL = settings.ASYNC_DATABASE_URL

# Ensure we're using absolute paths for SQLite
if DATABASE_URL.startswith("sqlite:///./"):
    db_path = os.path.abspath(DATABASE_URL.removeprefix("sqlite:///./"))
    DATABASE_URL = f"sqlite:///{db_path}"
    ASYNC_DATABASE_URL = f"sqlite+aiosqlite:///{db_path}"

# Sync engine for initialization
engine = create_engine(DATABASE_URL, connect_args={
                       "check_same_thread": False} if "sqlite" in DATABASE_URL else {})

# Async engine for application
async_engine = create_async_engine(ASYNC_DATABASE_URL, echo=False)
AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


SEED_LOCATIONS = [
    ("Estacionamiento Centro", "Av. Juárez 123, Centro, Monterrey", 25.0),
    ("Estacionamiento San Pedro", "Calzada del Valle 456, San Pedro Garza García", 30.0),
    ("Estacionamiento Fundidora", "Av. Fundidora 501, Obrera, Monterrey", 20.0),
]


def init_db(seed: bool = True):
    logger.info(f"Initializing database at: {DATABASE_URL}")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Tables created")

    if not seed:
        return

    # Create initial locations and spots
    from sqlalchemy.orm import Session
    from src.infrastructure.persistence.models.models import Location, ParkingSpot

    with Session(engine) as session:
        if session.query(Location).count() == 0:
            for name, address, price in SEED_LOCATIONS:
                location = Location(name=name, address=address)
                location.parking_spots = [
                    ParkingSpot(spot_number=str(number), price=price, is_available=True)
                    for number in range(1, 6)
                ]
                session.add(location)
            session.commit()
            logger.info(f"Created {len(SEED_LOCATIONS)} locations with 5 spots each")
