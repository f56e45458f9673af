from datetime import datetime, timezone
from typing import Optional, Dict, Tuple
from loguru import logger

from src.application.payments import AbstractPaymentGateway, ChargeRequest
from src.application.repositories import AbstractReservationRepository, AbstractAdditionalChargeRepository
from src.config.settings_env import settings
from src.domain.common import ChargeStatus, OverstayState, ReservationStatus
from src.domain.entities import AdditionalCharge, Reservation
from src.domain.exceptions import NotFoundError, ReservationValidationError
from src.domain import rules
from src.infrastructure.persistence.locks import KeyedLockRegistry, lock_registry


class BillingService:
    """Overstay evaluation and additional charges.

    The overstay clock is evaluated here on every request instead of in the
    browser, so a closed tab does not lose the charge. A charge request
    already in flight when the reservation is cancelled is not interrupted.
    """

    def __init__(
        self,
        reservation_repo: AbstractReservationRepository,
        charge_repo: AbstractAdditionalChargeRepository,
        payment_gateway: AbstractPaymentGateway,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        self.reservation_repo = reservation_repo
        self.charge_repo = charge_repo
        self.payment_gateway = payment_gateway
        self.locks = locks if locks is not None else lock_registry

    async def _get_reservation(self, reservation_id: int) -> Reservation:
        reservation = await self.reservation_repo.get_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    def quote(self, reservation: Reservation, now: datetime) -> Tuple[int, float]:
        minutes = rules.exceeded_minutes(reservation.end_time, now)
        amount = rules.overstay_charge(
            minutes, block_minutes=settings.OVERSTAY_BLOCK_MINUTES, block_fee=settings.OVERSTAY_BLOCK_FEE
        )
        return minutes, amount

    async def get_overstay_status(self, reservation_id: int) -> Dict:
        reservation = await self._get_reservation(reservation_id)
        paid_charge = await self.charge_repo.get_paid_for_reservation(reservation_id)
        now = datetime.now(timezone.utc)

        state = rules.overstay_state(reservation.end_time, now, settled=paid_charge is not None)
        status = {
            "reservation_id": reservation.id,
            "state": state,
            "end_time": reservation.end_time,
            "seconds_remaining": 0,
            "exceeded_minutes": 0,
            "additional_charge": 0.0,
            "charge": paid_charge,
        }
        if state == OverstayState.ACTIVE:
            status["seconds_remaining"] = int((reservation.end_time - now).total_seconds())
        elif state == OverstayState.EXCEEDED:
            status["exceeded_minutes"], status["additional_charge"] = self.quote(reservation, now)
        else:
            status["additional_charge"] = paid_charge.amount
        return status

    async def submit_additional_charge(
        self, reservation_id: int, amount: float, exceeded_minutes: int
    ) -> Tuple[AdditionalCharge, bool]:
        """Charge the overstay once. Returns ``(charge, created)``."""
        if amount is None or amount <= 0:
            raise ReservationValidationError("Invalid amount")

        logger.info(f"Processing additional charge for reservation {reservation_id}: {amount} ({exceeded_minutes} min)")

        async with self.locks.lock("charge", reservation_id):
            reservation = await self._get_reservation(reservation_id)

            existing = await self.charge_repo.get_paid_for_reservation(reservation_id)
            if existing:
                logger.info(f"Reservation {reservation_id} already has paid charge {existing.id}")
                return existing, False

            if reservation.status == ReservationStatus.CANCELLED:
                raise ReservationValidationError(f"Reservation {reservation_id} is cancelled")

            now = datetime.now(timezone.utc)
            if rules.overstay_state(reservation.end_time, now) != OverstayState.EXCEEDED:
                raise ReservationValidationError(
                    f"Reservation {reservation_id} has not exceeded its end time"
                )

            minutes, expected_amount = self.quote(reservation, now)
            if round(amount, 2) != expected_amount or exceeded_minutes != minutes:
                logger.warning(
                    f"Client quoted {amount} for {exceeded_minutes} min on reservation {reservation_id}, "
                    f"charging {expected_amount} for {minutes} min"
                )

            result = await self.payment_gateway.charge(
                ChargeRequest(
                    amount=expected_amount,
                    currency=settings.CURRENCY,
                    description=f"Overstay charge - reservation {reservation_id}",
                    original_payment_id=reservation.payment_id,
                    metadata={
                        "reservationId": str(reservation_id),
                        "exceededMinutes": str(minutes),
                        "type": "additional_charge",
                    },
                )
            )

            charge = await self.charge_repo.add(
                AdditionalCharge(
                    reservation_id=reservation_id,
                    amount=expected_amount,
                    reason=f"Overstay ({minutes} minutes)",
                    status=ChargeStatus.PAID if result.succeeded else ChargeStatus.FAILED,
                    payment_id=result.payment_id,
                    payment_status=result.status,
                )
            )

        if charge.status == ChargeStatus.PAID:
            logger.info(f"Additional charge {charge.id} paid for reservation {reservation_id}: {charge.amount}")
        else:
            logger.warning(f"Additional charge {charge.id} failed for reservation {reservation_id}: {result.error}")
        return charge, True
