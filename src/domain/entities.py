from datetime import datetime
from typing import Optional

from src.domain.common import ReservationStatus, ChargeStatus


class Location:
    def __init__(
        self, name: str, address: str, id: Optional[int] = None, created_at: Optional[datetime] = None
    ):
        self.id = id
        self.name = name
        self.address = address
        self.created_at = created_at


class ParkingSpot:
    def __init__(
        self, spot_number: str, price: float, location_id: int, is_available: bool = True, id: Optional[int] = None
    ):
        self.id = id
        self.spot_number = spot_number
        self.price = price
        self.location_id = location_id
        self.is_available = is_available


class Reservation:
    def __init__(
        self,
        parking_spot_id: int,
        start_time: datetime,
        end_time: datetime,
        price: float,
        qr_code: str,
        status: ReservationStatus = ReservationStatus.PENDING,
        id: Optional[int] = None,
        user_id: Optional[str] = None,
        payment_method: str = "card",
        payment_id: Optional[str] = None,
        timer_started_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.parking_spot_id = parking_spot_id
        self.start_time = start_time
        self.end_time = end_time
        self.status = ReservationStatus.normalize(status)
        self.price = price
        self.payment_method = payment_method
        self.payment_id = payment_id
        self.qr_code = qr_code
        self.timer_started_at = timer_started_at
        self.created_at = created_at

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600


class AdditionalCharge:
    def __init__(
        self,
        reservation_id: int,
        amount: float,
        reason: str,
        status: ChargeStatus,
        id: Optional[int] = None,
        payment_id: Optional[str] = None,
        payment_status: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.reservation_id = reservation_id
        self.amount = amount
        self.reason = reason
        self.status = ChargeStatus(status)
        self.payment_id = payment_id
        self.payment_status = payment_status
        self.created_at = created_at
