from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @classmethod
    def normalize(cls, value) -> "ReservationStatus":
        """Accept legacy lower/mixed case values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown reservation status: {value!r}") from None

    @classmethod
    def active(cls) -> tuple:
        return (cls.PENDING, cls.CONFIRMED)

    @property
    def is_active(self) -> bool:
        return self in self.active()


class ChargeStatus(str, Enum):
    PAID = "PAID"
    FAILED = "FAILED"


class OverstayState(str, Enum):
    ACTIVE = "ACTIVE"
    EXCEEDED = "EXCEEDED"
    SETTLED = "SETTLED"
