from fastapi import Depends, HTTPException, status, Header
from typing import Dict, Any
from functools import lru_cache
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.database import get_db
from ..collaborators import BookingSource, SqlBookingSource, SqlTechnicianDirectory, TechnicianDirectory
from ..data_interface import ApiBookingSource, ApiTechnicianDirectory, WorkOrderApiClient
from ..stores import TimeOffStore, WorkingHoursStore
from ..availability import AvailabilityResolver
from ..scheduler import FleetAvailabilityScanner, SlotSearchEngine


async def get_api_key(api_key: str = Header(..., alias="api-key")) -> Dict[str, Any]:
    """
    Validate API key for protected endpoints.

    Args:
        api_key: API key extracted from the 'api-key' header

    Returns:
        Dict containing the API key

    Raises:
        HTTPException: If API key is invalid or missing
    """
    settings = get_settings()
    if api_key not in settings["api_keys"]:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API Key",
        )
    return {"api_key": api_key}


async def get_company_id(company_id: str = Header(..., alias="company-id")) -> str:
    """The requesting tenant, taken from the 'company-id' header."""
    return company_id


@lru_cache()
def get_timezone() -> ZoneInfo:
    """Zone in which working-hours templates are interpreted."""
    return ZoneInfo(get_settings()["timezone"])


@lru_cache()
def get_workorder_client() -> WorkOrderApiClient:
    """Shared client for the work-order service (api backend only)."""
    settings = get_settings()
    return WorkOrderApiClient(settings["workorder_api_base_url"], api_key=settings["workorder_api_key"])


# --- Engine Dependencies ---

def get_technician_directory(db: Session = Depends(get_db)) -> TechnicianDirectory:
    if get_settings()["collaborator_backend"] == "api":
        return ApiTechnicianDirectory(get_workorder_client())
    return SqlTechnicianDirectory(db)


def get_booking_source(
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id),
) -> BookingSource:
    if get_settings()["collaborator_backend"] == "api":
        return ApiBookingSource(get_workorder_client(), company_id)
    return SqlBookingSource(db)


def get_working_hours_store(
    db: Session = Depends(get_db),
    directory: TechnicianDirectory = Depends(get_technician_directory),
) -> WorkingHoursStore:
    return WorkingHoursStore(db, directory)


def get_time_off_store(
    db: Session = Depends(get_db),
    directory: TechnicianDirectory = Depends(get_technician_directory),
) -> TimeOffStore:
    return TimeOffStore(db, directory)


def get_availability_resolver(
    working_hours: WorkingHoursStore = Depends(get_working_hours_store),
    time_off: TimeOffStore = Depends(get_time_off_store),
    bookings: BookingSource = Depends(get_booking_source),
    tz: ZoneInfo = Depends(get_timezone),
) -> AvailabilityResolver:
    return AvailabilityResolver(working_hours, time_off, bookings, tz)


def get_slot_search_engine(
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> SlotSearchEngine:
    return SlotSearchEngine(resolver)


def get_fleet_scanner(
    directory: TechnicianDirectory = Depends(get_technician_directory),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> FleetAvailabilityScanner:
    return FleetAvailabilityScanner(directory, resolver)
