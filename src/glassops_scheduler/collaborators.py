"""
Read-only collaborators the engine queries but does not own.

- TechnicianDirectory: "does technician X exist in company Y", "list company Y's technicians"
- BookingSource: "list non-terminal bookings for technician X"

The SQL implementations below read the shared database. `data_interface` provides
the same contracts over the work-order service API.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db import models as db_models
from .errors import NotFound
from .models import Booking, Technician, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

TECHNICIAN_NOT_FOUND = "Technician not found or access denied"


class TechnicianDirectory(Protocol):
    def get(self, technician_id: str, company_id: str) -> Optional[Technician]:
        """Returns the technician if it exists in `company_id`, else None."""
        ...

    def list_for_company(self, company_id: str) -> List[Technician]:
        """All technicians of a company in the directory's natural order."""
        ...


class BookingSource(Protocol):
    def list_active(
        self,
        technician_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        """Non-terminal bookings for a technician, optionally limited to those overlapping [start, end)."""
        ...


def require_technician(directory: TechnicianDirectory, technician_id: str, company_id: str) -> Technician:
    """Tenant check shared by every engine operation."""
    technician = directory.get(technician_id, company_id)
    if technician is None:
        raise NotFound(TECHNICIAN_NOT_FOUND)
    return technician


class SqlTechnicianDirectory:
    """Technician directory backed by the `technicians` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, technician_id: str, company_id: str) -> Optional[Technician]:
        stmt = select(db_models.Technician).where(
            db_models.Technician.id == technician_id,
            db_models.Technician.company_id == company_id,
        )
        row = self.db.execute(stmt).scalars().first()
        return Technician.model_validate(row) if row else None

    def list_for_company(self, company_id: str) -> List[Technician]:
        # Natural order is hire order; ties broken by id for a stable listing
        stmt = (
            select(db_models.Technician)
            .where(db_models.Technician.company_id == company_id)
            .order_by(db_models.Technician.created_at, db_models.Technician.id)
        )
        return [Technician.model_validate(row) for row in self.db.execute(stmt).scalars().all()]


def _work_order_to_booking(work_order: db_models.WorkOrder) -> Booking:
    return Booking(
        id=work_order.id,
        technician_id=work_order.technician_id,
        scheduled_start=work_order.scheduled_date,
        duration_minutes=work_order.estimated_duration_minutes,
        status=work_order.status,
        service_type=work_order.service_type,
    )


class SqlBookingSource:
    """Booking read model over the `work_orders` table."""

    def __init__(self, db: Session):
        self.db = db

    def list_active(
        self,
        technician_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        # Zero-length work orders occupy no time
        active = (
            db_models.WorkOrder.technician_id == technician_id,
            db_models.WorkOrder.scheduled_date.isnot(None),
            db_models.WorkOrder.status.notin_(list(TERMINAL_STATUSES)),
            db_models.WorkOrder.estimated_duration_minutes > 0,
        )
        stmt = select(db_models.WorkOrder).where(*active)
        if end is not None:
            stmt = stmt.where(db_models.WorkOrder.scheduled_date < end)
        if start is not None:
            # Nothing starting earlier than the longest booking can still be running at `start`
            longest = self.db.execute(
                select(func.max(db_models.WorkOrder.estimated_duration_minutes)).where(*active)
            ).scalar()
            if longest is not None:
                stmt = stmt.where(db_models.WorkOrder.scheduled_date > start - timedelta(minutes=longest))
        stmt = stmt.order_by(db_models.WorkOrder.scheduled_date, db_models.WorkOrder.id)

        bookings = [_work_order_to_booking(wo) for wo in self.db.execute(stmt).scalars().all()]
        # The SQL lower bound is coarse; the exact end check needs each duration
        if start is not None:
            bookings = [b for b in bookings if b.interval.end > start]
        logger.debug("Loaded %d active bookings for technician %s", len(bookings), technician_id)
        return bookings
