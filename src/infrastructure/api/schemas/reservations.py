from pydantic import BaseModel, Field, field_validator, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from typing import Optional, List
from src.domain.common import ReservationStatus, ChargeStatus, OverstayState


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class ErrorResponse(BaseModel):
    error: str
    message: str


class LocationCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)
    address: str = Field(..., min_length=5, max_length=200)


class LocationResponse(LocationCreate):
    id: int
    created_at: Optional[datetime] = None


class ParkingSpotCreate(CamelModel):
    spot_number: str = Field(..., min_length=1, max_length=20)
    price: float = Field(..., ge=0, le=10000)

    @field_validator('spot_number')
    def validate_spot_number(cls, v):  # pylint: disable=no-self-argument
        return v.strip()


class ParkingSpotPriceUpdate(CamelModel):
    price: float = Field(..., ge=0, le=10000)


class ParkingSpotResponse(CamelModel):
    id: int
    spot_number: str
    price: float
    location_id: int
    is_available: bool


class SpotAvailability(CamelModel):
    id: int
    spot_number: str
    price: float
    is_available: bool


class ReservationWindow(CamelModel):
    start_time: datetime
    end_time: datetime

    @field_validator('start_time', 'end_time')
    @classmethod
    def make_datetime_aware(cls, dt: datetime) -> datetime:
        return _aware(dt)


class ReservationCreate(ReservationWindow):
    parking_spot_id: int
    user_id: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None


class ReservationConfirm(CamelModel):
    payment_id: Optional[str] = None


class ReservationResponse(CamelModel):
    id: int
    user_id: Optional[str] = None
    parking_spot_id: int
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    price: float
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    qr_code: str
    timer_started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator('start_time', 'end_time', 'timer_started_at', 'created_at')
    @classmethod
    def make_datetime_aware(cls, dt: Optional[datetime]) -> Optional[datetime]:
        return _aware(dt)


class ReservationEnvelope(CamelModel):
    reservation: ReservationResponse


class QRVerifyRequest(CamelModel):
    qr_code: str = Field(..., min_length=1)


class QRVerifyResponse(CamelModel):
    valid: bool
    message: str
    reservation: ReservationResponse


class AdditionalChargeRequest(CamelModel):
    amount: float = Field(..., gt=0)
    exceeded_minutes: int = Field(..., ge=0)


class AdditionalChargeResponse(CamelModel):
    id: int
    reservation_id: int
    amount: float
    reason: str
    status: ChargeStatus
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None
    created_at: Optional[datetime] = None


class AdditionalChargeResult(CamelModel):
    created: bool
    message: str
    charge: AdditionalChargeResponse


class OverstayStatus(CamelModel):
    reservation_id: int
    state: OverstayState
    end_time: datetime
    seconds_remaining: int
    exceeded_minutes: int
    additional_charge: float
    charge: Optional[AdditionalChargeResponse] = None


class SweepResult(CamelModel):
    expired: int
    completed: int
    spots_updated: int


class LocationSpots(CamelModel):
    location_id: int
    date: str
    parking_spots: List[SpotAvailability]
