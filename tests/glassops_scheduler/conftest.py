"""Shared fixtures: an in-memory database seeded with technicians in two companies."""

from datetime import datetime, time, timezone

import pytest

from glassops_scheduler.db import Base, SessionLocal, engine
from glassops_scheduler.db.models import Technician as DBTechnician, WorkOrder as DBWorkOrder
from glassops_scheduler.collaborators import SqlBookingSource, SqlTechnicianDirectory
from glassops_scheduler.locks import TechnicianLocks
from glassops_scheduler.models import WorkOrderStatus
from glassops_scheduler.stores import TimeOffStore, WorkingHoursStore

COMPANY_A = "company-a"
COMPANY_B = "company-b"
TECH_1 = "tech-1"
TECH_2 = "tech-2"
TECH_OTHER = "tech-other"


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def db_session():
    """Fresh schema per test on the shared in-memory engine."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def technicians(db_session):
    """Two technicians in company A (hired in order) and one in company B."""
    rows = [
        DBTechnician(id=TECH_1, company_id=COMPANY_A, full_name="Dana Reyes", created_at=utc(2023, 1, 10)),
        DBTechnician(id=TECH_2, company_id=COMPANY_A, full_name="Sam Ortiz", created_at=utc(2023, 3, 1)),
        DBTechnician(id=TECH_OTHER, company_id=COMPANY_B, full_name="Alex Kim", created_at=utc(2022, 5, 5)),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture
def directory(db_session):
    return SqlTechnicianDirectory(db_session)


@pytest.fixture
def booking_source(db_session):
    return SqlBookingSource(db_session)


@pytest.fixture
def working_hours_store(db_session, directory):
    return WorkingHoursStore(db_session, directory, locks=TechnicianLocks())


@pytest.fixture
def time_off_store(db_session, directory):
    return TimeOffStore(db_session, directory, locks=TechnicianLocks())


@pytest.fixture
def add_work_order(db_session):
    """Factory inserting a work order row directly (the engine never writes them)."""
    counter = {"next_id": 1}

    def _add(technician_id, scheduled_date, duration=60, status=WorkOrderStatus.SCHEDULED,
             company_id=COMPANY_A, service_type="Windshield repair"):
        row = DBWorkOrder(
            id=counter["next_id"],
            company_id=company_id,
            technician_id=technician_id,
            scheduled_date=scheduled_date,
            estimated_duration_minutes=duration,
            status=status,
            service_type=service_type,
        )
        counter["next_id"] += 1
        db_session.add(row)
        db_session.commit()
        return row

    return _add


@pytest.fixture
def weekday_hours(working_hours_store, technicians):
    """09:00-17:00 Monday to Friday for both company A technicians."""
    for technician_id in (TECH_1, TECH_2):
        for day in range(1, 6):
            working_hours_store.add(technician_id, COMPANY_A, day, time(9, 0), time(17, 0))
