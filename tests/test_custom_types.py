import pytest
from datetime import datetime, timezone, timedelta
from sqlalchemy import create_engine, Column, Integer
from sqlalchemy.orm import sessionmaker, declarative_base
from src.shared.custom_types import UTCDateTime, ensure_utc
from unittest.mock import MagicMock

Base = declarative_base()

class TimestampRow(Base):
    __tablename__ = "test_table"
    id = Column(Integer, primary_key=True)
    utc_datetime_col = Column(UTCDateTime)

@pytest.fixture(scope="function")
def db_session_custom_types():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)

def test_utc_datetime_aware_to_db_and_back(db_session_custom_types):
    session = db_session_custom_types
    now_aware = datetime.now(timezone.utc).replace(microsecond=0)

    instance = TimestampRow(utc_datetime_col=now_aware)
    session.add(instance)
    session.commit()

    retrieved_instance = session.query(TimestampRow).first()
    assert retrieved_instance.utc_datetime_col == now_aware
    assert retrieved_instance.utc_datetime_col.tzinfo == timezone.utc

def test_utc_datetime_naive_to_db_and_back(db_session_custom_types):
    session = db_session_custom_types
    # Naive datetimes are taken to be UTC already
    naive = datetime(2030, 1, 15, 14, 0, 0)

    instance = TimestampRow(utc_datetime_col=naive)
    session.add(instance)
    session.commit()

    retrieved_instance = session.query(TimestampRow).first()
    assert retrieved_instance.utc_datetime_col == naive.replace(tzinfo=timezone.utc)
    assert retrieved_instance.utc_datetime_col.tzinfo == timezone.utc

def test_utc_datetime_none_value(db_session_custom_types):
    session = db_session_custom_types

    instance = TimestampRow(utc_datetime_col=None)
    session.add(instance)
    session.commit()

    retrieved_instance = session.query(TimestampRow).first()
    assert retrieved_instance.utc_datetime_col is None

def test_utc_datetime_different_timezone_to_db_and_back(db_session_custom_types):
    session = db_session_custom_types
    # Monterrey, UTC-6
    cst = timezone(timedelta(hours=-6))
    now_cst = datetime.now(cst).replace(microsecond=0)
    now_utc_expected = now_cst.astimezone(timezone.utc)

    instance = TimestampRow(utc_datetime_col=now_cst)
    session.add(instance)
    session.commit()

    retrieved_instance = session.query(TimestampRow).first()
    assert retrieved_instance.utc_datetime_col == now_utc_expected
    assert retrieved_instance.utc_datetime_col.tzinfo == timezone.utc

def test_window_comparison_across_zones(db_session_custom_types):
    session = db_session_custom_types
    cst = timezone(timedelta(hours=-6))
    session.add(TimestampRow(utc_datetime_col=datetime(2030, 1, 15, 8, 0, tzinfo=cst)))
    session.commit()

    # 08:00 CST is 14:00 UTC
    boundary = datetime(2030, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert session.query(TimestampRow).filter(TimestampRow.utc_datetime_col >= boundary).count() == 1
    assert session.query(TimestampRow).filter(TimestampRow.utc_datetime_col > boundary).count() == 0

def test_ensure_utc():
    assert ensure_utc(None) is None
    assert ensure_utc(datetime(2030, 1, 1, 10, 0)) == datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)
    cst = timezone(timedelta(hours=-6))
    converted = ensure_utc(datetime(2030, 1, 1, 10, 0, tzinfo=cst))
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 16

def test_utc_datetime_process_bind_param_non_sqlite():
    utc_type = UTCDateTime()
    naive_dt = datetime(2023, 1, 1, 10, 0, 0)

    mock_dialect = MagicMock()
    mock_dialect.name = 'postgresql'

    processed_value = utc_type.process_bind_param(naive_dt, mock_dialect)
    assert processed_value == naive_dt.replace(tzinfo=timezone.utc)
    assert processed_value.tzinfo == timezone.utc

def test_utc_datetime_process_bind_param_sqlite():
    utc_type = UTCDateTime()
    cst = timezone(timedelta(hours=-6))

    mock_dialect = MagicMock()
    mock_dialect.name = 'sqlite'

    processed_value = utc_type.process_bind_param(datetime(2023, 1, 1, 10, 0, tzinfo=cst), mock_dialect)
    assert processed_value.tzinfo is None
    assert processed_value == datetime(2023, 1, 1, 16, 0)

def test_utc_datetime_process_result_value_naive_explicit():
    utc_type = UTCDateTime()
    # Simulate a naive datetime coming from the database
    naive_db_dt = datetime(2023, 1, 1, 10, 0, 0)

    mock_dialect = MagicMock()
    mock_dialect.name = 'postgresql'

    processed_value = utc_type.process_result_value(naive_db_dt, mock_dialect)
    assert processed_value.tzinfo == timezone.utc
    assert processed_value == naive_db_dt.replace(tzinfo=timezone.utc)

def test_utc_datetime_load_dialect_impl_non_sqlite():
    utc_type = UTCDateTime()
    mock_dialect = MagicMock()
    mock_dialect.name = 'postgresql'
    mock_dialect.type_descriptor.return_value = "mock_type_descriptor"

    result = utc_type.load_dialect_impl(mock_dialect)
    assert result == "mock_type_descriptor"
    mock_dialect.type_descriptor.assert_called_once()
    args, kwargs = mock_dialect.type_descriptor.call_args
    assert isinstance(args[0], UTCDateTime.impl)
    assert args[0].timezone is True
