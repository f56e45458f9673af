from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from src.api.dependencies import get_reservation_service, get_billing_service
from src.application.services.billing_service import BillingService
from src.application.services.reservation_service import ReservationService
from src.domain.common import ChargeStatus
from src.domain.exceptions import ReservationError
from src.infrastructure.api.schemas.reservations import (
    ReservationCreate, ReservationConfirm, ReservationEnvelope, QRVerifyRequest, QRVerifyResponse,
    AdditionalChargeRequest, AdditionalChargeResult, OverstayStatus
)

router = APIRouter(prefix="/reservations", tags=["reservations"])

INTERNAL_ERROR = {"error": "INTERNAL", "message": "Internal error"}


def _http_error(e: ReservationError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("", response_model=ReservationEnvelope, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservation = await service.create_reservation(
            parking_spot_id=data.parking_spot_id,
            start_time=data.start_time,
            end_time=data.end_time,
            user_id=data.user_id,
            price=data.price,
            payment_method=data.payment_method,
            payment_id=data.payment_id,
        )
        return {"reservation": reservation}
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception("Error creating reservation")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/verify-qr", response_model=QRVerifyResponse)
async def verify_qr(
    data: QRVerifyRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        return await service.verify_qr(data.qr_code)
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception("Error verifying QR code")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.get("/{reservation_id}", response_model=ReservationEnvelope)
async def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservation = await service.get_reservation(reservation_id)
        return {"reservation": reservation}
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception(f"Error fetching reservation {reservation_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/{reservation_id}/confirm", response_model=ReservationEnvelope)
async def confirm_reservation(
    reservation_id: int,
    data: ReservationConfirm = ReservationConfirm(),
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservation = await service.confirm_reservation(reservation_id, payment_id=data.payment_id)
        return {"reservation": reservation}
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception(f"Error confirming reservation {reservation_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/{reservation_id}/cancel", response_model=ReservationEnvelope)
async def cancel_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservation = await service.cancel_reservation(reservation_id)
        return {"reservation": reservation}
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception(f"Error cancelling reservation {reservation_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.get("/{reservation_id}/overstay", response_model=OverstayStatus)
async def get_overstay_status(
    reservation_id: int,
    billing: BillingService = Depends(get_billing_service)
):
    try:
        return await billing.get_overstay_status(reservation_id)
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception(f"Error evaluating overstay for reservation {reservation_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/{reservation_id}/additional-charge", response_model=AdditionalChargeResult)
async def submit_additional_charge(
    reservation_id: int,
    data: AdditionalChargeRequest,
    billing: BillingService = Depends(get_billing_service)
):
    try:
        charge, created = await billing.submit_additional_charge(
            reservation_id, amount=data.amount, exceeded_minutes=data.exceeded_minutes
        )
        if not created:
            message = "A paid additional charge already exists"
        elif charge.status == ChargeStatus.PAID:
            message = "Additional charge processed"
        else:
            message = "Additional charge declined"
        return {"created": created, "message": message, "charge": charge}
    except ReservationError as e:
        raise _http_error(e)
    except Exception:
        logger.exception(f"Error processing additional charge for reservation {reservation_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
