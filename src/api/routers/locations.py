from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from src.api.dependencies import get_location_service, get_reservation_service
from src.api.routers.reservations import INTERNAL_ERROR
from src.application.services.location_service import LocationService
from src.application.services.reservation_service import ReservationService
from src.domain.exceptions import ReservationError
from src.infrastructure.api.schemas.reservations import LocationCreate, LocationResponse, LocationSpots

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("", response_model=List[LocationResponse])
async def list_locations(service: LocationService = Depends(get_location_service)):
    try:
        return await service.list_locations()
    except Exception:
        logger.exception("Error listing locations")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.post("", response_model=LocationResponse, status_code=201)
async def create_location(
    data: LocationCreate,
    service: LocationService = Depends(get_location_service)
):
    try:
        return await service.create_location(data.name, data.address)
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception:
        logger.exception("Error creating location")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)


@router.get("/{location_id}/spots", response_model=LocationSpots)
async def list_location_spots(
    location_id: int,
    day: Optional[date] = Query(default=None, alias="date"),
    service: ReservationService = Depends(get_reservation_service)
):
    day = day or datetime.now(timezone.utc).date()
    try:
        spots = await service.list_spot_availability(location_id, day)
        return {"location_id": location_id, "date": day.isoformat(), "parking_spots": spots}
    except ReservationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception:
        logger.exception(f"Error listing spots for location {location_id}")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
