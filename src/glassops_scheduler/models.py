from datetime import datetime, time, timedelta
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Enums ---

class WorkOrderStatus(str, Enum):
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in-progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

# Work orders in these states no longer occupy a technician's time
TERMINAL_STATUSES = frozenset({WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED})

class ServiceCategory(str, Enum):
    REPAIR = 'repair'
    REPLACEMENT = 'replacement'
    EMERGENCY = 'emergency'
    GENERAL = 'general'

class UnavailableReason(str, Enum):
    OUTSIDE_WORKING_HOURS = 'outside_working_hours'
    TIME_OFF = 'time_off'
    ALREADY_BOOKED = 'already_booked'


# --- Core Models ---

class Interval(BaseModel):
    """
    A half-open time window [start, end) between two timezone-aware instants.

    Touching windows do not overlap: a booking ending at 10:00 leaves 10:00 free.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        """True iff the two windows share at least one instant."""
        return self.start < other.end and other.start < self.end

    def contains(self, inner: "Interval") -> bool:
        """True iff `inner` lies entirely within this window."""
        return self.start <= inner.start and inner.end <= self.end

    def intersect(self, other: "Interval") -> Optional["Interval"]:
        if not self.overlaps(other):
            return None
        return Interval(start=max(self.start, other.start), end=min(self.end, other.end))

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


class Technician(BaseModel):
    """A technician as seen by the engine: identity and owning company only."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    full_name: Optional[str] = None


class WorkingHoursEntry(BaseModel):
    """A recurring weekly availability template (0 = Sunday .. 6 = Saturday)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    technician_id: str
    day_of_week: int
    start_time: time
    end_time: time


class WorkingHoursPatch(BaseModel):
    day_of_week: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class TimeOffEntry(BaseModel):
    """An ad-hoc absence, not tied to a weekday."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    technician_id: str
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = None

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_datetime, end=self.end_datetime)


class TimeOffPatch(BaseModel):
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    reason: Optional[str] = None


class Booking(BaseModel):
    """Read model over a work order assigned to a technician."""
    id: int
    technician_id: str
    scheduled_start: datetime
    duration_minutes: int = Field(gt=0)
    status: WorkOrderStatus
    service_type: Optional[str] = None

    @property
    def interval(self) -> Interval:
        return Interval(
            start=self.scheduled_start,
            end=self.scheduled_start + timedelta(minutes=self.duration_minutes),
        )

    @property
    def occupies_time(self) -> bool:
        return self.status not in TERMINAL_STATUSES


# --- Engine Results ---

class AvailabilityResult(BaseModel):
    """Verdict for one technician and one candidate interval."""
    available: bool
    reason: Optional[UnavailableReason] = None
    conflicting_entity: Optional[Union[TimeOffEntry, Booking]] = None


class TechnicianAvailability(BaseModel):
    """One row of a fleet scan."""
    technician_id: str
    full_name: Optional[str] = None
    available: bool
    reason: Optional[UnavailableReason] = None
