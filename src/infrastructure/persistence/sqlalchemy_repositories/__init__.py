from .sqlalchemy_repositories import (
    SQLAlchemyLocationRepository,
    SQLAlchemyParkingSpotRepository,
    SQLAlchemyReservationRepository,
    SQLAlchemyAdditionalChargeRepository,
)

__all__ = [
    "SQLAlchemyLocationRepository",
    "SQLAlchemyParkingSpotRepository",
    "SQLAlchemyReservationRepository",
    "SQLAlchemyAdditionalChargeRepository",
]
