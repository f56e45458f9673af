from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship
from src.shared.custom_types import UTCDateTime

Base = declarative_base()


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    parking_spots = relationship("ParkingSpot", back_populates="location", order_by="ParkingSpot.spot_number")


class ParkingSpot(Base):
    __tablename__ = "parking_spots"

    id = Column(Integer, primary_key=True, index=True)
    spot_number = Column(String, nullable=False)
    price = Column(Float, nullable=False, default=20.0)  # hourly
    is_available = Column(Boolean, default=True)  # cached, reservations are authoritative
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)

    location = relationship("Location", back_populates="parking_spots")
    reservations = relationship("Reservation", back_populates="parking_spot")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_spot_window", "parking_spot_id", "start_time", "end_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=True, index=True)
    parking_spot_id = Column(Integer, ForeignKey("parking_spots.id"), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    status = Column(String, default="PENDING", nullable=False)  # PENDING, CONFIRMED, CANCELLED, COMPLETED
    price = Column(Float, nullable=False, default=0.0)
    payment_method = Column(String, default="card")
    payment_id = Column(String, nullable=True)
    qr_code = Column(String, unique=True, nullable=False)
    timer_started_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    parking_spot = relationship("ParkingSpot", back_populates="reservations")
    additional_charges = relationship("AdditionalCharge", back_populates="reservation")

    @property
    def duration_hours(self):
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds() / 3600
        return None

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "parking_spot_id": self.parking_spot_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status,
            "price": self.price,
            "payment_id": self.payment_id,
            "qr_code": self.qr_code,
        }


class AdditionalCharge(Base):
    __tablename__ = "additional_charges"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    reason = Column(String, nullable=False)
    payment_id = Column(String, nullable=True)
    payment_status = Column(String, nullable=True)  # provider-side status, e.g. "succeeded"
    status = Column(String, default="PAID", nullable=False)  # PAID, FAILED
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    reservation = relationship("Reservation", back_populates="additional_charges")
