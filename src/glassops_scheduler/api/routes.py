from fastapi import APIRouter, Depends, Path, Query, Response, status as http_status
from fastapi.responses import JSONResponse
from typing import List, Optional
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from ..availability import AvailabilityResolver
from ..collaborators import BookingSource, TechnicianDirectory, require_technician
from ..errors import InvalidArgument
from ..intervals import candidate_from_slot, ensure_aware
from ..models import (
    AvailabilityResult, Booking, Interval, TimeOffEntry, TimeOffPatch,
    WorkingHoursEntry, WorkingHoursPatch,
)
from ..scheduler import FleetAvailabilityScanner, SlotSearchEngine, estimate_duration_minutes
from ..stores import TimeOffStore, WorkingHoursStore

from .models import (
    AvailabilityCheckResponse, BookingResponse, ScheduleEntryCreate, ScheduleEntryResponse,
    ScheduleEntryUpdate, SlotResponse, TechnicianAvailabilityResponse, TimeOffCreate,
    TimeOffResponse, TimeOffUpdate,
)
from .deps import (
    get_api_key, get_availability_resolver, get_booking_source, get_company_id,
    get_fleet_scanner, get_settings, get_slot_search_engine, get_technician_directory,
    get_time_off_store, get_timezone, get_working_hours_store,
)

router = APIRouter(dependencies=[Depends(get_api_key)])


def convert_schedule_entry_to_response(entry: WorkingHoursEntry) -> ScheduleEntryResponse:
    return ScheduleEntryResponse.model_validate(entry)


def convert_time_off_to_response(entry: TimeOffEntry) -> TimeOffResponse:
    return TimeOffResponse.model_validate(entry)


def convert_booking_to_response(booking: Booking) -> BookingResponse:
    """
    Convert an engine Booking to a BookingResponse, exposing its occupied window.
    """
    interval = booking.interval
    return BookingResponse(
        id=booking.id,
        technician_id=booking.technician_id,
        start=interval.start,
        end=interval.end,
        duration_minutes=booking.duration_minutes,
        status=booking.status,
        service_type=booking.service_type,
    )


def convert_availability_to_response(
    technician_id: str, candidate: Interval, result: AvailabilityResult
) -> AvailabilityCheckResponse:
    conflicting_time_off = None
    conflicting_booking = None
    if isinstance(result.conflicting_entity, TimeOffEntry):
        conflicting_time_off = convert_time_off_to_response(result.conflicting_entity)
    elif isinstance(result.conflicting_entity, Booking):
        conflicting_booking = convert_booking_to_response(result.conflicting_entity)

    return AvailabilityCheckResponse(
        technician_id=technician_id,
        start=candidate.start,
        end=candidate.end,
        available=result.available,
        reason=result.reason,
        conflicting_time_off=conflicting_time_off,
        conflicting_booking=conflicting_booking,
    )


# --- Working Hours Endpoints ---

@router.get("/technicians/{technician_id}/schedule", response_model=List[ScheduleEntryResponse])
async def list_schedule(
    technician_id: str = Path(..., description="The ID of the technician"),
    company_id: str = Depends(get_company_id),
    store: WorkingHoursStore = Depends(get_working_hours_store),
):
    """
    List a technician's weekly working-hours entries ordered by day and start time.
    """
    entries = store.list_for_technician(technician_id, company_id)
    return [convert_schedule_entry_to_response(e) for e in entries]


@router.post(
    "/technicians/{technician_id}/schedule",
    response_model=ScheduleEntryResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def add_schedule_entry(
    payload: ScheduleEntryCreate,
    technician_id: str = Path(..., description="The ID of the technician"),
    company_id: str = Depends(get_company_id),
    store: WorkingHoursStore = Depends(get_working_hours_store),
):
    """
    Add a working-hours entry. Overlapping entries on the same day are rejected (409).
    """
    entry = store.add(
        technician_id, company_id,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time,
        end_time=payload.end_time,
    )
    return convert_schedule_entry_to_response(entry)


@router.put("/technicians/{technician_id}/schedule/{entry_id}", response_model=ScheduleEntryResponse)
async def update_schedule_entry(
    payload: ScheduleEntryUpdate,
    technician_id: str = Path(..., description="The ID of the technician"),
    entry_id: int = Path(..., description="The ID of the schedule entry"),
    company_id: str = Depends(get_company_id),
    store: WorkingHoursStore = Depends(get_working_hours_store),
):
    """
    Update a working-hours entry; at least one field must be provided.
    """
    if not payload.model_fields_set:
        raise InvalidArgument("body", "At least one field must be provided for update")
    patch = WorkingHoursPatch(**payload.model_dump(exclude_unset=True))
    entry = store.update(entry_id, technician_id, company_id, patch)
    return convert_schedule_entry_to_response(entry)


@router.delete(
    "/technicians/{technician_id}/schedule/{entry_id}",
    status_code=http_status.HTTP_204_NO_CONTENT,
)
async def delete_schedule_entry(
    technician_id: str = Path(..., description="The ID of the technician"),
    entry_id: int = Path(..., description="The ID of the schedule entry"),
    company_id: str = Depends(get_company_id),
    store: WorkingHoursStore = Depends(get_working_hours_store),
):
    store.remove(entry_id, technician_id, company_id)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


# --- Time Off Endpoints ---

@router.get("/technicians/{technician_id}/time-off", response_model=List[TimeOffResponse])
async def list_time_off(
    technician_id: str = Path(..., description="The ID of the technician"),
    start_date: Optional[datetime] = Query(None, description="Only entries ending after this instant"),
    end_date: Optional[datetime] = Query(None, description="Only entries starting before this instant"),
    company_id: str = Depends(get_company_id),
    store: TimeOffStore = Depends(get_time_off_store),
):
    """
    List a technician's time off ordered by start, optionally limited to a window.
    """
    entries = store.list_for_technician(technician_id, company_id, from_=start_date, to=end_date)
    return [convert_time_off_to_response(e) for e in entries]


@router.post(
    "/technicians/{technician_id}/time-off",
    response_model=TimeOffResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def add_time_off(
    payload: TimeOffCreate,
    technician_id: str = Path(..., description="The ID of the technician"),
    company_id: str = Depends(get_company_id),
    store: TimeOffStore = Depends(get_time_off_store),
):
    """
    Add a time-off period. Overlapping periods are rejected (409).
    """
    entry = store.add(
        technician_id, company_id,
        start_datetime=payload.start_datetime,
        end_datetime=payload.end_datetime,
        reason=payload.reason,
    )
    return convert_time_off_to_response(entry)


@router.put("/technicians/{technician_id}/time-off/{entry_id}", response_model=TimeOffResponse)
async def update_time_off(
    payload: TimeOffUpdate,
    technician_id: str = Path(..., description="The ID of the technician"),
    entry_id: int = Path(..., description="The ID of the time-off entry"),
    company_id: str = Depends(get_company_id),
    store: TimeOffStore = Depends(get_time_off_store),
):
    if not payload.model_fields_set:
        raise InvalidArgument("body", "At least one field must be provided for update")
    # exclude_unset keeps an explicit "reason": null distinguishable from an omitted reason
    patch = TimeOffPatch(**payload.model_dump(exclude_unset=True))
    entry = store.update(entry_id, technician_id, company_id, patch)
    return convert_time_off_to_response(entry)


@router.delete(
    "/technicians/{technician_id}/time-off/{entry_id}",
    status_code=http_status.HTTP_204_NO_CONTENT,
)
async def delete_time_off(
    technician_id: str = Path(..., description="The ID of the technician"),
    entry_id: int = Path(..., description="The ID of the time-off entry"),
    company_id: str = Depends(get_company_id),
    store: TimeOffStore = Depends(get_time_off_store),
):
    store.remove(entry_id, technician_id, company_id)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


# --- Availability Endpoints ---

@router.get("/technicians/{technician_id}/availability", response_model=AvailabilityCheckResponse)
async def check_technician_availability(
    technician_id: str = Path(..., description="The ID of the technician"),
    start: datetime = Query(..., description="Start of the candidate window (timezone-aware)"),
    end: datetime = Query(..., description="End of the candidate window (timezone-aware)"),
    company_id: str = Depends(get_company_id),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
):
    """
    Check whether a technician is free for the whole window, and if not, why.
    """
    candidate = Interval(start=start, end=end)
    result = resolver.check(technician_id, company_id, candidate)
    return convert_availability_to_response(technician_id, candidate, result)


@router.get("/technicians/{technician_id}/next-available", response_model=SlotResponse)
async def find_next_available_slot(
    technician_id: str = Path(..., description="The ID of the technician"),
    start_date: date = Query(..., description="First day to search"),
    duration: int = Query(60, description="Required duration in minutes"),
    days_to_search: Optional[int] = Query(None, description="Search horizon in days (1-30)"),
    company_id: str = Depends(get_company_id),
    directory: TechnicianDirectory = Depends(get_technician_directory),
    engine: SlotSearchEngine = Depends(get_slot_search_engine),
):
    """
    Find the earliest slot of `duration` minutes on or after `start_date`.
    Returns 404 with the search parameters when nothing fits in the horizon.
    """
    if days_to_search is None:
        days_to_search = get_settings()["default_search_days"]

    slot = engine.find_next(technician_id, company_id, start_date, duration, days_to_search)
    if slot is None:
        return JSONResponse(
            status_code=http_status.HTTP_404_NOT_FOUND,
            content={
                "error": "No available time slots found",
                "searchParams": {
                    "startDate": start_date.isoformat(),
                    "duration": duration,
                    "daysToSearch": days_to_search,
                },
            },
        )

    technician = require_technician(directory, technician_id, company_id)
    return SlotResponse(
        technician_id=technician_id,
        full_name=technician.full_name,
        start=slot.start,
        end=slot.end,
        duration_minutes=duration,
    )


@router.get("/technicians/{technician_id}/bookings", response_model=List[BookingResponse])
async def list_technician_bookings(
    technician_id: str = Path(..., description="The ID of the technician"),
    start: Optional[datetime] = Query(None, description="Only bookings ending after this instant"),
    end: Optional[datetime] = Query(None, description="Only bookings starting before this instant"),
    company_id: str = Depends(get_company_id),
    directory: TechnicianDirectory = Depends(get_technician_directory),
    bookings: BookingSource = Depends(get_booking_source),
):
    """
    List a technician's active bookings (non-terminal work orders) ordered by start.
    """
    require_technician(directory, technician_id, company_id)
    if start is not None:
        ensure_aware(start, "start")
    if end is not None:
        ensure_aware(end, "end")
    if start is not None and end is not None and end <= start:
        raise InvalidArgument("end", "End date must be after start date")

    return [convert_booking_to_response(b) for b in bookings.list_active(technician_id, start=start, end=end)]


@router.get("/availability", response_model=List[TechnicianAvailabilityResponse])
async def check_fleet_availability(
    day: date = Query(..., alias="date", description="Local calendar day of the appointment"),
    start_time: time = Query(..., alias="time", description="Local start time of the appointment"),
    duration: Optional[int] = Query(None, description="Duration in minutes; defaults from service_type"),
    service_type: Optional[str] = Query(None, description="Free-text service description"),
    company_id: str = Depends(get_company_id),
    tz: ZoneInfo = Depends(get_timezone),
    scanner: FleetAvailabilityScanner = Depends(get_fleet_scanner),
):
    """
    Check every technician of the company for one appointment window.
    """
    if duration is None:
        duration = estimate_duration_minutes(service_type)
    candidate = candidate_from_slot(day, start_time, duration, tz)
    results = scanner.scan_company(company_id, candidate)
    return [TechnicianAvailabilityResponse(**r.model_dump()) for r in results]


@router.get("/availability/first", response_model=SlotResponse)
async def find_first_available_technician(
    day: date = Query(..., alias="date", description="Local calendar day of the appointment"),
    start_time: time = Query(..., alias="time", description="Local start time of the appointment"),
    duration: Optional[int] = Query(None, description="Duration in minutes; defaults from service_type"),
    service_type: Optional[str] = Query(None, description="Free-text service description"),
    company_id: str = Depends(get_company_id),
    tz: ZoneInfo = Depends(get_timezone),
    scanner: FleetAvailabilityScanner = Depends(get_fleet_scanner),
):
    """
    The first technician (in directory order) free for the appointment window.
    """
    if duration is None:
        duration = estimate_duration_minutes(service_type)
    candidate = candidate_from_slot(day, start_time, duration, tz)
    chosen = scanner.first_available(company_id, candidate)
    if chosen is None:
        return JSONResponse(
            status_code=http_status.HTTP_404_NOT_FOUND,
            content={"error": "No technician is available for the requested time"},
        )
    return SlotResponse(
        technician_id=chosen.technician_id,
        full_name=chosen.full_name,
        start=candidate.start,
        end=candidate.end,
        duration_minutes=duration,
    )
