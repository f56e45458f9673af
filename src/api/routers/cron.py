from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from src.api.dependencies import get_sweep_service, verify_cron_secret
from src.api.routers.reservations import INTERNAL_ERROR
from src.application.services.sweep_service import SweepService
from src.infrastructure.api.schemas.reservations import SweepResult

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


@router.get("/check-expired-reservations", response_model=SweepResult)
async def check_expired_reservations(service: SweepService = Depends(get_sweep_service)):
    try:
        return await service.run()
    except Exception:
        logger.exception("Error checking expired reservations")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
