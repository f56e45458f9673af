from typing import List
from loguru import logger

from src.application.repositories import AbstractLocationRepository, AbstractParkingSpotRepository
from src.domain.entities import Location, ParkingSpot
from src.domain.exceptions import NotFoundError, ReservationValidationError


class LocationService:
    def __init__(
        self,
        location_repo: AbstractLocationRepository,
        parking_spot_repo: AbstractParkingSpotRepository,
    ):
        self.location_repo = location_repo
        self.parking_spot_repo = parking_spot_repo

    async def list_locations(self) -> List[Location]:
        return await self.location_repo.get_all()

    async def create_location(self, name: str, address: str) -> Location:
        location = await self.location_repo.add(Location(name=name.strip(), address=address.strip()))
        logger.info(f"Location {location.id} created: {location.name}")
        return location

    async def add_parking_spot(self, location_id: int, spot_number: str, price: float) -> ParkingSpot:
        if not await self.location_repo.get_by_id(location_id):
            raise NotFoundError(f"Location {location_id} not found")
        existing = {s.spot_number for s in await self.parking_spot_repo.get_by_location(location_id)}
        if spot_number in existing:
            raise ReservationValidationError(f"Spot {spot_number} already exists at location {location_id}")

        spot = await self.parking_spot_repo.add(
            ParkingSpot(spot_number=spot_number, price=price, location_id=location_id)
        )
        logger.info(f"Spot {spot.spot_number} added to location {location_id} at {price}/h")
        return spot

    async def _get_spot(self, spot_id: int) -> ParkingSpot:
        spot = await self.parking_spot_repo.get_by_id(spot_id)
        if not spot:
            raise NotFoundError(f"Parking spot {spot_id} not found")
        return spot

    async def update_spot_price(self, spot_id: int, price: float) -> ParkingSpot:
        spot = await self._get_spot(spot_id)
        spot.price = price
        spot = await self.parking_spot_repo.update(spot)
        logger.info(f"Spot {spot_id} price set to {price}")
        return spot

    async def toggle_spot_availability(self, spot_id: int) -> ParkingSpot:
        spot = await self._get_spot(spot_id)
        spot.is_available = not spot.is_available
        spot = await self.parking_spot_repo.update(spot)
        logger.info(f"Spot {spot_id} availability set to {spot.is_available}")
        return spot
