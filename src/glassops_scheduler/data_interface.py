"""
Technician directory and booking source backed by the work-order service API.

Used when technicians and work orders live in the work-order service rather than
in this service's database (SCHEDULER_COLLABORATOR_BACKEND=api). Failures are
logged and re-raised; the engine adds no retry or fallback.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Booking, Technician, WorkOrderStatus, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

# Set timeout to avoid hanging indefinitely
TIMEOUT = httpx.Timeout(10.0, connect=5.0)


# --- Work-order service payloads ---

class TechnicianPayload(BaseModel):
    """Technician as returned by the work-order service."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    company_id: str = Field(alias="companyId")
    full_name: Optional[str] = Field(default=None, alias="fullName")


class WorkOrderPayload(BaseModel):
    """Work order as returned by the work-order service (only the fields read here)."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: int
    technician_id: Optional[str] = Field(default=None, alias="technicianId")
    scheduled_date: Optional[datetime] = Field(default=None, alias="scheduledDate")
    estimated_duration_minutes: int = Field(default=60, alias="estimatedDurationMinutes")
    status: WorkOrderStatus
    service_type: Optional[str] = Field(default=None, alias="serviceType")

    @field_validator("scheduled_date")
    @classmethod
    def assume_utc(cls, v):
        # The service serializes UTC; treat offset-less values as UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


# --- Conversion Functions (API payload -> Internal Model) ---

def _api_technician_to_internal(payload: TechnicianPayload) -> Technician:
    return Technician(id=payload.id, company_id=payload.company_id, full_name=payload.full_name)


def _api_work_order_to_booking(payload: WorkOrderPayload, technician_id: str) -> Booking:
    return Booking(
        id=payload.id,
        technician_id=payload.technician_id or technician_id,
        scheduled_start=payload.scheduled_date,
        duration_minutes=payload.estimated_duration_minutes,
        status=payload.status,
        service_type=payload.service_type,
    )


class WorkOrderApiClient:
    """Thin wrapper over an httpx client for the work-order service."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self._client = client or httpx.Client(base_url=base_url, timeout=TIMEOUT)

    def _get_auth_headers(self) -> Dict[str, str]:
        """Returns authentication headers for API requests."""
        if not self.api_key:
            logger.warning("WORKORDER_API_KEY is not set; calling the work-order service unauthenticated")
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def _make_request(self, method: str, endpoint: str, company_id: str, **kwargs) -> httpx.Response:
        """Helper to make API requests; errors are logged and re-raised unchanged."""
        headers = {**self._get_auth_headers(), "company-id": company_id}
        try:
            response = self._client.request(method, endpoint, headers=headers, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Error response %s while requesting %r: %s",
                exc.response.status_code, str(exc.request.url), exc.response.text,
            )
            raise
        except httpx.RequestError as exc:
            logger.warning("An error occurred while requesting %r: %s", str(exc.request.url), exc)
            raise

    def close(self) -> None:
        self._client.close()


class ApiTechnicianDirectory:
    """TechnicianDirectory over `GET /technicians` and `GET /technicians/{id}`."""

    def __init__(self, client: WorkOrderApiClient):
        self.client = client

    def get(self, technician_id: str, company_id: str) -> Optional[Technician]:
        try:
            response = self.client._make_request("GET", f"/technicians/{technician_id}", company_id)
        except httpx.HTTPStatusError as exc:
            # The service answers 404 for unknown ids and for other companies alike
            if exc.response.status_code == 404:
                return None
            raise
        technician = _api_technician_to_internal(TechnicianPayload(**response.json()))
        if technician.company_id != company_id:
            return None
        return technician

    def list_for_company(self, company_id: str) -> List[Technician]:
        response = self.client._make_request("GET", "/technicians", company_id)
        technicians = [_api_technician_to_internal(TechnicianPayload(**item)) for item in response.json()]
        return [t for t in technicians if t.company_id == company_id]


class ApiBookingSource:
    """BookingSource over `GET /workorders?technicianId=`."""

    def __init__(self, client: WorkOrderApiClient, company_id: str):
        self.client = client
        self.company_id = company_id

    def list_active(
        self,
        technician_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        response = self.client._make_request(
            "GET", "/workorders", self.company_id, params={"technicianId": technician_id}
        )
        payloads = [WorkOrderPayload(**item) for item in response.json()]

        bookings = [
            _api_work_order_to_booking(p, technician_id)
            for p in payloads
            if p.scheduled_date is not None
            and p.status not in TERMINAL_STATUSES
            and p.estimated_duration_minutes > 0
        ]
        if end is not None:
            bookings = [b for b in bookings if b.scheduled_start < end]
        if start is not None:
            bookings = [b for b in bookings if b.interval.end > start]
        return sorted(bookings, key=lambda b: (b.scheduled_start, b.id))
