from typing import List, Optional, Set
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_

from src.domain.entities import Location, ParkingSpot, Reservation, AdditionalCharge
from src.domain.common import ReservationStatus, ChargeStatus
from src.infrastructure.persistence.models.models import (
    Location as ORMLocation,
    ParkingSpot as ORMParkingSpot,
    Reservation as ORMReservation,
    AdditionalCharge as ORMAdditionalCharge,
)
from src.application.repositories import (
    AbstractLocationRepository,
    AbstractParkingSpotRepository,
    AbstractReservationRepository,
    AbstractAdditionalChargeRepository,
)

ACTIVE_STATUSES = [status.value for status in ReservationStatus.active()]


def _location(orm_location: ORMLocation) -> Location:
    return Location(
        id=orm_location.id,
        name=orm_location.name,
        address=orm_location.address,
        created_at=orm_location.created_at,
    )


def _spot(orm_spot: ORMParkingSpot) -> ParkingSpot:
    return ParkingSpot(
        id=orm_spot.id,
        spot_number=orm_spot.spot_number,
        price=orm_spot.price,
        location_id=orm_spot.location_id,
        is_available=orm_spot.is_available,
    )


def _reservation(orm_reservation: ORMReservation) -> Reservation:
    return Reservation(
        id=orm_reservation.id,
        user_id=orm_reservation.user_id,
        parking_spot_id=orm_reservation.parking_spot_id,
        start_time=orm_reservation.start_time,
        end_time=orm_reservation.end_time,
        status=ReservationStatus.normalize(orm_reservation.status),
        price=orm_reservation.price,
        payment_method=orm_reservation.payment_method,
        payment_id=orm_reservation.payment_id,
        qr_code=orm_reservation.qr_code,
        timer_started_at=orm_reservation.timer_started_at,
        created_at=orm_reservation.created_at,
    )


def _charge(orm_charge: ORMAdditionalCharge) -> AdditionalCharge:
    return AdditionalCharge(
        id=orm_charge.id,
        reservation_id=orm_charge.reservation_id,
        amount=orm_charge.amount,
        reason=orm_charge.reason,
        status=ChargeStatus(orm_charge.status.upper()),
        payment_id=orm_charge.payment_id,
        payment_status=orm_charge.payment_status,
        created_at=orm_charge.created_at,
    )


class SQLAlchemyLocationRepository(AbstractLocationRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, location_id: int) -> Optional[Location]:
        orm_location = await self.session.get(ORMLocation, location_id)
        return _location(orm_location) if orm_location else None

    async def get_all(self) -> List[Location]:
        result = await self.session.execute(select(ORMLocation).order_by(ORMLocation.name))
        return [_location(l) for l in result.scalars().all()]

    async def add(self, location: Location) -> Location:
        orm_location = ORMLocation(name=location.name, address=location.address)
        self.session.add(orm_location)
        await self.session.flush()
        await self.session.refresh(orm_location)
        await self.session.commit()
        return _location(orm_location)


class SQLAlchemyParkingSpotRepository(AbstractParkingSpotRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, spot_id: int) -> Optional[ParkingSpot]:
        result = await self.session.execute(
            select(ORMParkingSpot).where(ORMParkingSpot.id == spot_id)
        )
        orm_spot = result.scalars().first()
        return _spot(orm_spot) if orm_spot else None

    async def get_for_update(self, spot_id: int) -> Optional[ParkingSpot]:
        # FOR UPDATE is dropped by the SQLite dialect; the in-process lock covers it there
        result = await self.session.execute(
            select(ORMParkingSpot)
            .where(ORMParkingSpot.id == spot_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        orm_spot = result.scalars().first()
        return _spot(orm_spot) if orm_spot else None

    async def get_by_location(self, location_id: int) -> List[ParkingSpot]:
        result = await self.session.execute(
            select(ORMParkingSpot)
            .where(ORMParkingSpot.location_id == location_id)
            .order_by(ORMParkingSpot.spot_number)
        )
        return [_spot(s) for s in result.scalars().all()]

    async def get_all(self) -> List[ParkingSpot]:
        result = await self.session.execute(select(ORMParkingSpot).order_by(ORMParkingSpot.id))
        return [_spot(s) for s in result.scalars().all()]

    async def add(self, spot: ParkingSpot) -> ParkingSpot:
        orm_spot = ORMParkingSpot(
            spot_number=spot.spot_number,
            price=spot.price,
            location_id=spot.location_id,
            is_available=spot.is_available,
        )
        self.session.add(orm_spot)
        await self.session.flush()
        await self.session.refresh(orm_spot)
        await self.session.commit()
        return _spot(orm_spot)

    async def update(self, spot: ParkingSpot) -> ParkingSpot:
        orm_spot = await self.session.get(ORMParkingSpot, spot.id)
        if orm_spot:
            orm_spot.is_available = spot.is_available
            orm_spot.price = spot.price
            await self.session.flush()
            await self.session.refresh(orm_spot)
            await self.session.commit()
            return _spot(orm_spot)
        raise ValueError(f"Parking spot with ID {spot.id} not found.")


class SQLAlchemyReservationRepository(AbstractReservationRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        orm_reservation = await self.session.get(ORMReservation, reservation_id, populate_existing=True)
        return _reservation(orm_reservation) if orm_reservation else None

    async def get_by_qr_code(self, qr_code: str) -> Optional[Reservation]:
        result = await self.session.execute(
            select(ORMReservation).where(ORMReservation.qr_code == qr_code)
        )
        orm_reservation = result.scalars().first()
        return _reservation(orm_reservation) if orm_reservation else None

    async def add(self, reservation: Reservation) -> Reservation:
        orm_reservation = ORMReservation(
            user_id=reservation.user_id,
            parking_spot_id=reservation.parking_spot_id,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            status=reservation.status.value,
            price=reservation.price,
            payment_method=reservation.payment_method,
            payment_id=reservation.payment_id,
            qr_code=reservation.qr_code,
            timer_started_at=reservation.timer_started_at,
        )
        self.session.add(orm_reservation)
        await self.session.flush()
        await self.session.refresh(orm_reservation)
        return _reservation(orm_reservation)

    async def update(self, reservation: Reservation) -> Reservation:
        orm_reservation = await self.session.get(ORMReservation, reservation.id)
        if orm_reservation:
            orm_reservation.start_time = reservation.start_time
            orm_reservation.end_time = reservation.end_time
            orm_reservation.status = reservation.status.value
            orm_reservation.price = reservation.price
            orm_reservation.payment_id = reservation.payment_id
            orm_reservation.timer_started_at = reservation.timer_started_at
            await self.session.flush()
            await self.session.refresh(orm_reservation)
            return _reservation(orm_reservation)
        raise ValueError(f"Reservation with ID {reservation.id} not found.")

    async def has_conflict(
        self, spot_id: int, start_time: datetime, end_time: datetime, exclude_reservation_id: Optional[int] = None
    ) -> bool:
        # Closed intervals: existing.start <= end AND existing.end >= start
        conditions = [
            ORMReservation.parking_spot_id == spot_id,
            func.upper(ORMReservation.status).in_(ACTIVE_STATUSES),
            ORMReservation.start_time <= end_time,
            ORMReservation.end_time >= start_time,
        ]
        if exclude_reservation_id is not None:
            conditions.append(ORMReservation.id != exclude_reservation_id)

        result = await self.session.execute(
            select(func.count(ORMReservation.id)).where(and_(*conditions))
        )
        return (result.scalar() or 0) > 0

    async def get_reserved_spot_ids(self, spot_ids: List[int], start_time: datetime, end_time: datetime) -> Set[int]:
        if not spot_ids:
            return set()
        result = await self.session.execute(
            select(ORMReservation.parking_spot_id).where(
                and_(
                    ORMReservation.parking_spot_id.in_(spot_ids),
                    func.upper(ORMReservation.status).in_(ACTIVE_STATUSES),
                    ORMReservation.start_time <= end_time,
                    ORMReservation.end_time >= start_time,
                )
            )
        )
        return set(result.scalars().all())

    async def get_expired_pending(self, now: datetime) -> List[Reservation]:
        result = await self.session.execute(
            select(ORMReservation).where(
                and_(
                    func.upper(ORMReservation.status) == ReservationStatus.PENDING.value,
                    ORMReservation.start_time < now,
                )
            )
        )
        return [_reservation(r) for r in result.scalars().all()]

    async def get_finished_confirmed(self, now: datetime) -> List[Reservation]:
        result = await self.session.execute(
            select(ORMReservation).where(
                and_(
                    func.upper(ORMReservation.status) == ReservationStatus.CONFIRMED.value,
                    ORMReservation.end_time < now,
                )
            )
        )
        return [_reservation(r) for r in result.scalars().all()]

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()


class SQLAlchemyAdditionalChargeRepository(AbstractAdditionalChargeRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_paid_for_reservation(self, reservation_id: int) -> Optional[AdditionalCharge]:
        result = await self.session.execute(
            select(ORMAdditionalCharge)
            .where(
                and_(
                    ORMAdditionalCharge.reservation_id == reservation_id,
                    func.upper(ORMAdditionalCharge.status) == ChargeStatus.PAID.value,
                )
            )
            .order_by(ORMAdditionalCharge.id)
        )
        orm_charge = result.scalars().first()
        return _charge(orm_charge) if orm_charge else None

    async def add(self, charge: AdditionalCharge) -> AdditionalCharge:
        orm_charge = ORMAdditionalCharge(
            reservation_id=charge.reservation_id,
            amount=charge.amount,
            reason=charge.reason,
            payment_id=charge.payment_id,
            payment_status=charge.payment_status,
            status=charge.status.value,
        )
        self.session.add(orm_charge)
        await self.session.flush()
        await self.session.refresh(orm_charge)
        await self.session.commit()
        return _charge(orm_charge)
