from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from src.api.dependencies import get_location_service, get_reservation_service
from src.api.routers.reservations import INTERNAL_ERROR
from src.application.services.location_service import LocationService
from src.application.services.reservation_service import ReservationService
from src.domain.exceptions import ReservationError
from src.infrastructure.api.schemas.reservations import (
    ParkingSpotCreate, ParkingSpotPriceUpdate, ParkingSpotResponse, ReservationEnvelope, ReservationWindow
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/locations/{location_id}/parking-spots", response_model=ParkingSpotResponse, status_code=201)
async def add_parking_spot(
    location_id: int,
    data: ParkingSpotCreate,
    service: LocationService = Depends(get_location_service)
):
    try:
        return await service.add_parking_spot(location_id, data.spot_number, data.price)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception:
        logger.exception(f"Error adding spot to location {location_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.patch("/parking-spots/{spot_id}/price", response_model=ParkingSpotResponse)
async def update_spot_price(
    spot_id: int,
    data: ParkingSpotPriceUpdate,
    service: LocationService = Depends(get_location_service)
):
    try:
        return await service.update_spot_price(spot_id, data.price)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception:
        logger.exception(f"Error updating price of spot {spot_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("/parking-spots/{spot_id}/toggle-availability", response_model=ParkingSpotResponse)
async def toggle_spot_availability(
    spot_id: int,
    service: LocationService = Depends(get_location_service)
):
    try:
        return await service.toggle_spot_availability(spot_id)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception:
        logger.exception(f"Error toggling availability of spot {spot_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.put("/reservations/{reservation_id}", response_model=ReservationEnvelope)
async def reschedule_reservation(
    reservation_id: int,
    data: ReservationWindow,
    service: ReservationService = Depends(get_reservation_service)
):
    try:
        reservation = await service.reschedule_reservation(reservation_id, data.start_time, data.end_time)
        return {"reservation": reservation}
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception:
        logger.exception(f"Error rescheduling reservation {reservation_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
