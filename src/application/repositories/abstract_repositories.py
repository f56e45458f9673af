from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Set

from src.domain.entities import Location, ParkingSpot, Reservation, AdditionalCharge


class AbstractLocationRepository(ABC):
    @abstractmethod
    async def get_by_id(self, location_id: int) -> Optional[Location]:
        pass

    @abstractmethod
    async def get_all(self) -> List[Location]:
        pass

    @abstractmethod
    async def add(self, location: Location) -> Location:
        pass


class AbstractParkingSpotRepository(ABC):
    @abstractmethod
    async def get_by_id(self, spot_id: int) -> Optional[ParkingSpot]:
        pass

    @abstractmethod
    async def get_for_update(self, spot_id: int) -> Optional[ParkingSpot]:
        pass

    @abstractmethod
    async def get_by_location(self, location_id: int) -> List[ParkingSpot]:
        pass

    @abstractmethod
    async def get_all(self) -> List[ParkingSpot]:
        pass

    @abstractmethod
    async def add(self, spot: ParkingSpot) -> ParkingSpot:
        pass

    @abstractmethod
    async def update(self, spot: ParkingSpot) -> ParkingSpot:
        pass


class AbstractReservationRepository(ABC):
    @abstractmethod
    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def get_by_qr_code(self, qr_code: str) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def add(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def has_conflict(
        self, spot_id: int, start_time: datetime, end_time: datetime, exclude_reservation_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    async def get_reserved_spot_ids(self, spot_ids: List[int], start_time: datetime, end_time: datetime) -> Set[int]:
        pass

    @abstractmethod
    async def get_expired_pending(self, now: datetime) -> List[Reservation]:
        pass

    @abstractmethod
    async def get_finished_confirmed(self, now: datetime) -> List[Reservation]:
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class AbstractAdditionalChargeRepository(ABC):
    @abstractmethod
    async def get_paid_for_reservation(self, reservation_id: int) -> Optional[AdditionalCharge]:
        pass

    @abstractmethod
    async def add(self, charge: AdditionalCharge) -> AdditionalCharge:
        pass
