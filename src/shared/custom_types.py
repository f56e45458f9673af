# src/shared/custom_types.py
import datetime
from sqlalchemy import DateTime, TypeDecorator
from sqlalchemy.dialects.sqlite import DATETIME as SQLITE_DATETIME


def ensure_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Return an aware UTC datetime. Naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores timezone-aware datetimes as UTC.

    SQLite has no timezone support, so values are written there as naive UTC
    and re-tagged with UTC on the way out. Reservation windows are compared in
    SQL, which only works if every row uses the same zone.
    """
    impl = DateTime
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'sqlite':
            return dialect.type_descriptor(SQLITE_DATETIME())
        else:
            return dialect.type_descriptor(DateTime(timezone=True))

    def process_bind_param(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        value = ensure_utc(value)
        if value is None:
            return None
        if dialect.name == 'sqlite':
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        return ensure_utc(value)
