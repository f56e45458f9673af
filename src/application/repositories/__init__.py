from .abstract_repositories import (
    AbstractLocationRepository,
    AbstractParkingSpotRepository,
    AbstractReservationRepository,
    AbstractAdditionalChargeRepository,
)

__all__ = [
    "AbstractLocationRepository",
    "AbstractParkingSpotRepository",
    "AbstractReservationRepository",
    "AbstractAdditionalChargeRepository",
]
