"""Reservation business rules.

Pure functions shared by the services: window validation, two-tier pricing,
the closed-interval conflict rule and overstay billing. Nothing in here
touches the database or reads the clock; callers pass ``now`` in.
"""
import math
from datetime import datetime, timedelta
from typing import List

from src.domain.common import OverstayState
from src.domain.exceptions import ReservationValidationError


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Closed-interval overlap. Windows that only touch at an endpoint still conflict."""
    return start_a <= end_b and start_b <= end_a


def window_violations(
    start_time: datetime, end_time: datetime, now: datetime, max_hours: int = 24, max_advance_days: int = 30
) -> List[str]:
    violations = []
    if start_time >= end_time:
        violations.append("start time must be before end time")
    elif end_time - start_time > timedelta(hours=max_hours):
        violations.append(f"a reservation cannot last more than {max_hours} hours")
    if start_time > now + timedelta(days=max_advance_days):
        violations.append(f"start time cannot be more than {max_advance_days} days in the future")
    return violations


def validate_reservation_window(
    start_time: datetime, end_time: datetime, now: datetime, max_hours: int = 24, max_advance_days: int = 30
) -> None:
    violations = window_violations(start_time, end_time, now, max_hours, max_advance_days)
    if violations:
        raise ReservationValidationError("Invalid reservation time: " + "; ".join(violations))


def calculate_reservation_price(
    start_time: datetime, end_time: datetime, hourly_rate: float, base_fee: float = 100.0
) -> float:
    # First hour flat, every started hour after that at the spot's hourly rate
    hours = max((end_time - start_time).total_seconds() / 3600, 1.0)
    price = base_fee
    if hours > 1:
        price += math.ceil(hours - 1) * hourly_rate
    return round(price, 2)


def exceeded_minutes(end_time: datetime, now: datetime) -> int:
    """Started minutes past the end time, never less than 1."""
    exceeded_seconds = (now - end_time).total_seconds()
    return max(1, math.ceil(exceeded_seconds / 60))


def overstay_charge(minutes: int, block_minutes: int = 15, block_fee: float = 20.0) -> float:
    blocks = math.ceil(minutes / block_minutes)
    return round(blocks * block_fee, 2)


def overstay_state(end_time: datetime, now: datetime, settled: bool = False) -> OverstayState:
    if settled:
        return OverstayState.SETTLED
    if now < end_time:
        return OverstayState.ACTIVE
    return OverstayState.EXCEEDED
