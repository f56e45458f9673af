from datetime import datetime, timezone
from typing import Dict, Optional
from loguru import logger

from src.application.repositories import AbstractParkingSpotRepository, AbstractReservationRepository
from src.domain.common import ReservationStatus
from src.domain.entities import Reservation
from src.infrastructure.persistence.locks import KeyedLockRegistry, lock_registry


class SweepService:
    """Periodic reservation housekeeping."""

    def __init__(
        self,
        parking_spot_repo: AbstractParkingSpotRepository,
        reservation_repo: AbstractReservationRepository,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        self.parking_spot_repo = parking_spot_repo
        self.reservation_repo = reservation_repo
        self.locks = locks if locks is not None else lock_registry

    async def _transition(self, candidate: Reservation, expected: ReservationStatus, target: ReservationStatus, due) -> bool:
        """Move one reservation to ``target`` if it is still ``expected`` and still ``due``."""
        async with self.locks.lock("spot", candidate.parking_spot_id):
            reservation = await self.reservation_repo.get_by_id(candidate.id)
            if not reservation or reservation.status != expected or not due(reservation):
                return False
            reservation.status = target
            await self.reservation_repo.update(reservation)
            await self.reservation_repo.commit()
        return True

    async def run(self) -> Dict[str, int]:
        now = datetime.now(timezone.utc)

        # Pending reservations whose start passed without payment
        expired = 0
        for candidate in await self.reservation_repo.get_expired_pending(now):
            if await self._transition(
                candidate, ReservationStatus.PENDING, ReservationStatus.CANCELLED, lambda r: r.start_time < now
            ):
                expired += 1

        completed = 0
        for candidate in await self.reservation_repo.get_finished_confirmed(now):
            if await self._transition(
                candidate, ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED, lambda r: r.end_time < now
            ):
                completed += 1

        spots_updated = 0
        for spot in await self.parking_spot_repo.get_all():
            async with self.locks.lock("spot", spot.id):
                spot = await self.parking_spot_repo.get_by_id(spot.id)
                is_available = not await self.reservation_repo.has_conflict(spot.id, now, now)
                if spot.is_available != is_available:
                    spot.is_available = is_available
                    await self.parking_spot_repo.update(spot)
                    await self.reservation_repo.commit()
                    spots_updated += 1

        logger.info(f"Sweep done: {expired} expired, {completed} completed, {spots_updated} spots updated")
        return {"expired": expired, "completed": completed, "spots_updated": spots_updated}
