from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime, time

from ..models import UnavailableReason, WorkOrderStatus


# --- API Response Models ---

class ScheduleEntryResponse(BaseModel):
    """API response model for a working-hours entry."""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 12,
                "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                "day_of_week": 1,
                "start_time": "09:00:00",
                "end_time": "17:00:00"
            }
        },
    )

    id: int
    technician_id: str
    day_of_week: int
    start_time: time
    end_time: time

class TimeOffResponse(BaseModel):
    """API response model for a time-off entry."""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 4,
                "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                "start_datetime": "2024-06-03T09:00:00Z",
                "end_datetime": "2024-06-03T13:00:00Z",
                "reason": "Dentist"
            }
        },
    )

    id: int
    technician_id: str
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = None

class BookingResponse(BaseModel):
    """API response model for an active booking (non-terminal work order)."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 101,
                "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                "start": "2024-06-03T10:00:00Z",
                "end": "2024-06-03T11:00:00Z",
                "duration_minutes": 60,
                "status": "scheduled",
                "service_type": "Windshield repair"
            }
        },
    )

    id: int
    technician_id: str
    start: datetime
    end: datetime
    duration_minutes: int
    status: WorkOrderStatus
    service_type: Optional[str] = None

class AvailabilityCheckResponse(BaseModel):
    """API response model for a single technician availability check."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                "start": "2024-06-03T10:00:00Z",
                "end": "2024-06-03T11:00:00Z",
                "available": False,
                "reason": "already_booked",
                "conflicting_time_off": None,
                "conflicting_booking": {
                    "id": 101,
                    "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                    "start": "2024-06-03T10:00:00Z",
                    "end": "2024-06-03T11:00:00Z",
                    "duration_minutes": 60,
                    "status": "scheduled",
                    "service_type": "Windshield repair"
                }
            }
        },
    )

    technician_id: str
    start: datetime
    end: datetime
    available: bool
    reason: Optional[UnavailableReason] = None
    conflicting_time_off: Optional[TimeOffResponse] = None
    conflicting_booking: Optional[BookingResponse] = None

class TechnicianAvailabilityResponse(BaseModel):
    """API response model for one row of a fleet availability scan."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                "full_name": "Dana Reyes",
                "available": True,
                "reason": None
            }
        },
    )

    technician_id: str
    full_name: Optional[str] = None
    available: bool
    reason: Optional[UnavailableReason] = None

class SlotResponse(BaseModel):
    """API response model for a found time slot."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "technician_id": "3f9c2a1e-8b4d-4c55-9a51-2f0e6b7d1c90",
                "full_name": "Dana Reyes",
                "start": "2024-06-05T09:00:00Z",
                "end": "2024-06-05T10:30:00Z",
                "duration_minutes": 90
            }
        },
    )

    technician_id: str
    full_name: Optional[str] = None
    start: datetime
    end: datetime
    duration_minutes: int


# --- API Request Models ---

class ScheduleEntryCreate(BaseModel):
    """Request model for adding a working-hours entry."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "day_of_week": 1,
                "start_time": "09:00",
                "end_time": "17:00"
            }
        },
    )

    day_of_week: int
    start_time: time
    end_time: time

class ScheduleEntryUpdate(BaseModel):
    """Request model for updating a working-hours entry (at least one field)."""
    day_of_week: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

class TimeOffCreate(BaseModel):
    """Request model for adding a time-off entry."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "start_datetime": "2024-06-03T09:00:00Z",
                "end_datetime": "2024-06-03T13:00:00Z",
                "reason": "Dentist"
            }
        },
    )

    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = None

class TimeOffUpdate(BaseModel):
    """Request model for updating a time-off entry (at least one field)."""
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    reason: Optional[str] = None
