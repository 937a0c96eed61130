from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Time, Enum, Index
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

from glassops_scheduler.models import WorkOrderStatus

# Define the base class for all models
Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Stores timezone-aware datetimes as naive UTC and hands them back UTC-aware.

    SQLite drops offsets on DateTime columns, so the conversion is done here for
    every backend.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"Refusing to store naive datetime {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def _utcnow():
    return datetime.now(timezone.utc)


class Technician(Base):
    """SQLAlchemy model for a technician, owned by exactly one company."""
    __tablename__ = "technicians"

    id = Column(String(36), primary_key=True, index=True)
    company_id = Column(String(36), nullable=False, index=True)
    full_name = Column(String, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)

    # Relationships
    schedules = relationship("TechnicianSchedule", back_populates="technician", cascade="all, delete-orphan")
    time_off = relationship("TechnicianTimeOff", back_populates="technician", cascade="all, delete-orphan")
    work_orders = relationship("WorkOrder", back_populates="technician")


class TechnicianSchedule(Base):
    """SQLAlchemy model for a recurring weekly working-hours template."""
    __tablename__ = "technician_schedules"

    id = Column(Integer, primary_key=True, index=True)
    technician_id = Column(String(36), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Relationships
    technician = relationship("Technician", back_populates="schedules")

    __table_args__ = (Index("ix_schedule_technician_day", "technician_id", "day_of_week"),)


class TechnicianTimeOff(Base):
    """SQLAlchemy model for an ad-hoc absence period."""
    __tablename__ = "technician_time_off"

    id = Column(Integer, primary_key=True, index=True)
    technician_id = Column(String(36), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    start_datetime = Column(UTCDateTime, nullable=False)
    end_datetime = Column(UTCDateTime, nullable=False)
    reason = Column(String, nullable=True)

    # Relationships
    technician = relationship("Technician", back_populates="time_off")


class WorkOrder(Base):
    """
    SQLAlchemy model for the work-order columns the engine reads.

    Work orders are owned by the surrounding CRUD; the engine never writes them.
    """
    __tablename__ = "work_orders"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), nullable=False, index=True)
    technician_id = Column(String(36), ForeignKey("technicians.id"), nullable=True, index=True)
    scheduled_date = Column(UTCDateTime, nullable=True)
    estimated_duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(Enum(WorkOrderStatus, values_callable=lambda e: [m.value for m in e]), nullable=False)
    service_type = Column(String, nullable=True)

    # Relationships
    technician = relationship("Technician", back_populates="work_orders")
