from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, List, Dict
from loguru import logger

from src.application.repositories import (
    AbstractParkingSpotRepository,
    AbstractReservationRepository,
    AbstractLocationRepository,
)
from src.config.settings_env import settings
from src.domain.common import ReservationStatus
from src.domain.entities import Reservation, ParkingSpot
from src.domain.exceptions import (
    NotFoundError,
    ReservationConflictError,
    ReservationValidationError,
    SpotUnavailableError,
)
from src.domain.rules import calculate_reservation_price, validate_reservation_window
from src.infrastructure.persistence.locks import KeyedLockRegistry, lock_registry
from src.shared.custom_types import ensure_utc
from src.shared.utils import mint_qr_token

CONFLICT_MESSAGE = "A reservation already exists for this spot in the selected window"


class ReservationService:
    def __init__(
        self,
        parking_spot_repo: AbstractParkingSpotRepository,
        reservation_repo: AbstractReservationRepository,
        location_repo: Optional[AbstractLocationRepository] = None,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        self.parking_spot_repo = parking_spot_repo
        self.reservation_repo = reservation_repo
        self.location_repo = location_repo
        self.locks = locks if locks is not None else lock_registry

    def _validate_window(self, start_time: datetime, end_time: datetime) -> None:
        validate_reservation_window(
            start_time,
            end_time,
            now=datetime.now(timezone.utc),
            max_hours=settings.MAX_RESERVATION_HOURS,
            max_advance_days=settings.MAX_ADVANCE_DAYS,
        )

    async def create_reservation(
        self,
        parking_spot_id: int,
        start_time: datetime,
        end_time: datetime,
        user_id: Optional[str] = None,
        price: Optional[float] = None,
        payment_method: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> Reservation:
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)
        self._validate_window(start_time, end_time)

        # Check, insert and flag the spot while holding the spot's lock
        async with self.locks.lock("spot", parking_spot_id):
            try:
                spot = await self.parking_spot_repo.get_for_update(parking_spot_id)
                if not spot:
                    raise NotFoundError(f"Parking spot {parking_spot_id} not found")

                if await self.reservation_repo.has_conflict(spot.id, start_time, end_time):
                    logger.warning(
                        f"Conflict on spot {spot.id} for {start_time.isoformat()} - {end_time.isoformat()}"
                    )
                    raise ReservationConflictError(CONFLICT_MESSAGE)

                # Cached flag, may be stale until the next sweep
                if not spot.is_available:
                    raise SpotUnavailableError(f"Parking spot {spot.spot_number} is not available")

                expected_price = calculate_reservation_price(
                    start_time, end_time, hourly_rate=spot.price, base_fee=settings.BASE_FEE
                )
                if price is not None and round(price, 2) != expected_price:
                    logger.warning(
                        f"Client price {price} differs from expected {expected_price} for spot {spot.id}, using expected"
                    )

                reservation = await self.reservation_repo.add(
                    Reservation(
                        parking_spot_id=spot.id,
                        start_time=start_time,
                        end_time=end_time,
                        price=expected_price,
                        qr_code=mint_qr_token(),
                        status=ReservationStatus.CONFIRMED,
                        user_id=user_id,
                        payment_method=payment_method or "card",
                        payment_id=payment_id,
                    )
                )

                spot.is_available = False
                await self.parking_spot_repo.update(spot)
                await self.reservation_repo.commit()
            except Exception:
                await self.reservation_repo.rollback()
                raise

        logger.info(
            f"Reservation {reservation.id} created on spot {spot.spot_number} "
            f"({start_time.isoformat()} - {end_time.isoformat()}), price {reservation.price}"
        )
        return reservation

    async def get_reservation(self, reservation_id: int) -> Reservation:
        reservation = await self.reservation_repo.get_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def confirm_reservation(self, reservation_id: int, payment_id: Optional[str] = None) -> Reservation:
        """Payment succeeded: confirm and start the timer."""
        reservation = await self.get_reservation(reservation_id)
        # Status is re-read and written under the spot lock
        async with self.locks.lock("spot", reservation.parking_spot_id):
            reservation = await self.get_reservation(reservation_id)
            if not reservation.is_active:
                raise ReservationValidationError(
                    f"Reservation {reservation_id} is {reservation.status.value.lower()} and cannot be confirmed"
                )

            reservation.status = ReservationStatus.CONFIRMED
            reservation.timer_started_at = reservation.timer_started_at or datetime.now(timezone.utc)
            if payment_id:
                reservation.payment_id = payment_id
            reservation = await self.reservation_repo.update(reservation)
            await self.reservation_repo.commit()

        logger.info(f"Reservation {reservation_id} confirmed, timer started at {reservation.timer_started_at}")
        return reservation

    async def cancel_reservation(self, reservation_id: int) -> Reservation:
        """Payment failed or the user gave up: release the spot."""
        reservation = await self.get_reservation(reservation_id)
        async with self.locks.lock("spot", reservation.parking_spot_id):
            reservation = await self.get_reservation(reservation_id)
            if reservation.status == ReservationStatus.COMPLETED:
                raise ReservationValidationError(f"Reservation {reservation_id} is already completed")
            if reservation.status == ReservationStatus.CANCELLED:
                return reservation

            reservation.status = ReservationStatus.CANCELLED
            reservation = await self.reservation_repo.update(reservation)
            await self._refresh_spot_flag(reservation.parking_spot_id)
            await self.reservation_repo.commit()

        logger.info(f"Reservation {reservation_id} cancelled")
        return reservation

    async def reschedule_reservation(self, reservation_id: int, start_time: datetime, end_time: datetime) -> Reservation:
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)
        self._validate_window(start_time, end_time)

        reservation = await self.get_reservation(reservation_id)
        async with self.locks.lock("spot", reservation.parking_spot_id):
            try:
                reservation = await self.get_reservation(reservation_id)
                if not reservation.is_active:
                    raise ReservationValidationError(
                        f"Reservation {reservation_id} is {reservation.status.value.lower()} and cannot be changed"
                    )

                spot = await self.parking_spot_repo.get_for_update(reservation.parking_spot_id)
                if await self.reservation_repo.has_conflict(
                    spot.id, start_time, end_time, exclude_reservation_id=reservation.id
                ):
                    raise ReservationConflictError(CONFLICT_MESSAGE)

                reservation.start_time = start_time
                reservation.end_time = end_time
                reservation.price = calculate_reservation_price(
                    start_time, end_time, hourly_rate=spot.price, base_fee=settings.BASE_FEE
                )
                reservation = await self.reservation_repo.update(reservation)
                await self.reservation_repo.commit()
            except Exception:
                await self.reservation_repo.rollback()
                raise

        logger.info(f"Reservation {reservation_id} moved to {start_time.isoformat()} - {end_time.isoformat()}")
        return reservation

    async def verify_qr(self, qr_code: str) -> Dict:
        reservation = await self.reservation_repo.get_by_qr_code(qr_code)
        if not reservation or reservation.status != ReservationStatus.CONFIRMED:
            raise NotFoundError("Invalid QR code or reservation not found")

        now = datetime.now(timezone.utc)
        if now < reservation.start_time or now > reservation.end_time:
            return {
                "valid": False,
                "reservation": reservation,
                "message": "The reservation is not valid at the current time",
            }
        return {"valid": True, "reservation": reservation, "message": "Valid QR code"}

    async def list_spot_availability(self, location_id: int, day: Optional[date] = None) -> List[Dict]:
        """Spots of a location, available unless an active reservation touches ``day``."""
        if self.location_repo and not await self.location_repo.get_by_id(location_id):
            raise NotFoundError(f"Location {location_id} not found")

        day = day or datetime.now(timezone.utc).date()
        start_of_day = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end_of_day = start_of_day + timedelta(days=1) - timedelta(microseconds=1)

        spots = await self.parking_spot_repo.get_by_location(location_id)
        reserved = await self.reservation_repo.get_reserved_spot_ids(
            [s.id for s in spots], start_of_day, end_of_day
        )
        return [
            {
                "id": spot.id,
                "spot_number": spot.spot_number,
                "price": spot.price,
                "is_available": spot.id not in reserved,
            }
            for spot in spots
        ]

    async def _refresh_spot_flag(self, spot_id: int) -> Optional[ParkingSpot]:
        now = datetime.now(timezone.utc)
        spot = await self.parking_spot_repo.get_by_id(spot_id)
        if not spot:
            return None
        spot.is_available = not await self.reservation_repo.has_conflict(spot_id, now, now)
        return await self.parking_spot_repo.update(spot)
