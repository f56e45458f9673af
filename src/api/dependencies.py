from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.payments import AbstractPaymentGateway
from src.application.services.billing_service import BillingService
from src.application.services.location_service import LocationService
from src.application.services.reservation_service import ReservationService
from src.application.services.sweep_service import SweepService
from src.config.settings_env import settings
from src.domain.exceptions import UnauthorizedError
from src.infrastructure.payments.simulated_gateway import SimulatedPaymentGateway
from src.infrastructure.persistence.database import get_async_db
from src.infrastructure.persistence.locks import KeyedLockRegistry, lock_registry
from src.infrastructure.persistence.sqlalchemy_repositories import (
    SQLAlchemyLocationRepository,
    SQLAlchemyParkingSpotRepository,
    SQLAlchemyReservationRepository,
    SQLAlchemyAdditionalChargeRepository,
)

payment_gateway = SimulatedPaymentGateway()


def get_payment_gateway() -> AbstractPaymentGateway:
    return payment_gateway


def get_lock_registry() -> KeyedLockRegistry:
    return lock_registry


def get_reservation_service(
    db: AsyncSession = Depends(get_async_db),
    locks: KeyedLockRegistry = Depends(get_lock_registry),
) -> ReservationService:
    return ReservationService(
        parking_spot_repo=SQLAlchemyParkingSpotRepository(db),
        reservation_repo=SQLAlchemyReservationRepository(db),
        location_repo=SQLAlchemyLocationRepository(db),
        locks=locks,
    )


def get_billing_service(
    db: AsyncSession = Depends(get_async_db),
    gateway: AbstractPaymentGateway = Depends(get_payment_gateway),
    locks: KeyedLockRegistry = Depends(get_lock_registry),
) -> BillingService:
    return BillingService(
        reservation_repo=SQLAlchemyReservationRepository(db),
        charge_repo=SQLAlchemyAdditionalChargeRepository(db),
        payment_gateway=gateway,
        locks=locks,
    )


def get_location_service(db: AsyncSession = Depends(get_async_db)) -> LocationService:
    return LocationService(
        location_repo=SQLAlchemyLocationRepository(db),
        parking_spot_repo=SQLAlchemyParkingSpotRepository(db),
    )


def get_sweep_service(
    db: AsyncSession = Depends(get_async_db),
    locks: KeyedLockRegistry = Depends(get_lock_registry),
) -> SweepService:
    return SweepService(
        parking_spot_repo=SQLAlchemyParkingSpotRepository(db),
        reservation_repo=SQLAlchemyReservationRepository(db),
        locks=locks,
    )


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    if not settings.CRON_SECRET or authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(status_code=401, detail=UnauthorizedError("Unauthorized").to_dict())
