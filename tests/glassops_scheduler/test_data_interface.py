import pytest
import httpx
from datetime import datetime, timezone
from typing import Any, Dict, List

from glassops_scheduler import data_interface
from glassops_scheduler.data_interface import (
    ApiBookingSource, ApiTechnicianDirectory, WorkOrderApiClient, WorkOrderPayload,
)
from glassops_scheduler.models import WorkOrderStatus

COMPANY_A = "company-a"


# --- Fixtures ---

@pytest.fixture
def mock_work_orders_json() -> List[Dict[str, Any]]:
    """Mock JSON response for a technician's work orders from the API."""
    return [
        {"id": 3, "technicianId": "tech-1", "scheduledDate": "2024-06-03T14:00:00Z",
         "estimatedDurationMinutes": 120, "status": "scheduled", "serviceType": "Replacement"},
        {"id": 1, "technicianId": "tech-1", "scheduledDate": "2024-06-03T09:00:00Z",
         "estimatedDurationMinutes": 60, "status": "in-progress", "serviceType": "Repair"},
        {"id": 2, "technicianId": "tech-1", "scheduledDate": "2024-06-03T11:00:00Z",
         "status": "cancelled"},
        {"id": 4, "technicianId": "tech-1", "scheduledDate": None, "status": "scheduled"},
        {"id": 5, "technicianId": "tech-1", "scheduledDate": "2024-06-04T09:00:00",
         "status": "completed"},
    ]


@pytest.fixture
def recorded_requests() -> List[httpx.Request]:
    return []


def make_client(handler, recorded, api_key="secret") -> WorkOrderApiClient:
    def _record(request: httpx.Request) -> httpx.Response:
        recorded.append(request)
        return handler(request)

    http_client = httpx.Client(base_url="http://workorders.test/api", transport=httpx.MockTransport(_record))
    return WorkOrderApiClient("http://workorders.test/api", api_key=api_key, client=http_client)


# --- Payload conversion ---

def test_work_order_payload_reads_camel_case_and_assumes_utc():
    payload = WorkOrderPayload(**{
        "id": 9, "technicianId": 42, "scheduledDate": "2024-06-03T09:00:00",
        "status": "scheduled",
    })

    assert payload.technician_id == "42"
    assert payload.scheduled_date == datetime(2024, 6, 3, 9, tzinfo=timezone.utc)
    assert payload.estimated_duration_minutes == 60


def test_booking_conversion_falls_back_to_requested_technician():
    payload = WorkOrderPayload(id=9, scheduled_date=datetime(2024, 6, 3, 9, tzinfo=timezone.utc),
                               status=WorkOrderStatus.SCHEDULED)
    booking = data_interface._api_work_order_to_booking(payload, "tech-1")

    assert booking.technician_id == "tech-1"
    assert booking.duration_minutes == 60


# --- Client ---

def test_requests_carry_auth_and_company_headers(recorded_requests):
    client = make_client(lambda r: httpx.Response(200, json=[]), recorded_requests)

    ApiTechnicianDirectory(client).list_for_company(COMPANY_A)

    [request] = recorded_requests
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["company-id"] == COMPANY_A


def test_missing_api_key_sends_no_authorization(recorded_requests):
    client = make_client(lambda r: httpx.Response(200, json=[]), recorded_requests, api_key=None)

    ApiTechnicianDirectory(client).list_for_company(COMPANY_A)

    assert "Authorization" not in recorded_requests[0].headers


def test_server_errors_are_reraised(recorded_requests):
    client = make_client(lambda r: httpx.Response(500, text="boom"), recorded_requests)

    with pytest.raises(httpx.HTTPStatusError):
        ApiTechnicianDirectory(client).list_for_company(COMPANY_A)


def test_transport_errors_are_reraised(recorded_requests):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler, recorded_requests)

    with pytest.raises(httpx.ConnectError):
        ApiBookingSource(client, COMPANY_A).list_active("tech-1")


# --- Technician directory ---

def test_get_technician(recorded_requests):
    client = make_client(
        lambda r: httpx.Response(200, json={"id": "tech-1", "companyId": COMPANY_A, "fullName": "Dana Reyes"}),
        recorded_requests,
    )

    technician = ApiTechnicianDirectory(client).get("tech-1", COMPANY_A)

    assert technician.id == "tech-1"
    assert technician.full_name == "Dana Reyes"
    assert recorded_requests[0].url.path == "/api/technicians/tech-1"


def test_get_technician_404_is_none(recorded_requests):
    client = make_client(lambda r: httpx.Response(404, json={"error": "not found"}), recorded_requests)
    assert ApiTechnicianDirectory(client).get("tech-1", COMPANY_A) is None


def test_get_technician_of_other_company_is_none(recorded_requests):
    client = make_client(
        lambda r: httpx.Response(200, json={"id": "tech-1", "companyId": "company-b"}),
        recorded_requests,
    )
    assert ApiTechnicianDirectory(client).get("tech-1", COMPANY_A) is None


def test_list_for_company_keeps_service_order_and_filters_tenant(recorded_requests):
    client = make_client(
        lambda r: httpx.Response(200, json=[
            {"id": "tech-2", "companyId": COMPANY_A},
            {"id": "tech-9", "companyId": "company-b"},
            {"id": "tech-1", "companyId": COMPANY_A},
        ]),
        recorded_requests,
    )

    technicians = ApiTechnicianDirectory(client).list_for_company(COMPANY_A)
    assert [t.id for t in technicians] == ["tech-2", "tech-1"]


# --- Booking source ---

def test_list_active_drops_terminal_and_unscheduled(mock_work_orders_json, recorded_requests):
    client = make_client(lambda r: httpx.Response(200, json=mock_work_orders_json), recorded_requests)

    bookings = ApiBookingSource(client, COMPANY_A).list_active("tech-1")

    assert [b.id for b in bookings] == [1, 3]
    assert bookings[1].duration_minutes == 120
    request = recorded_requests[0]
    assert request.url.path == "/api/workorders"
    assert request.url.params["technicianId"] == "tech-1"


def test_list_active_window_filter_is_half_open(mock_work_orders_json, recorded_requests):
    client = make_client(lambda r: httpx.Response(200, json=mock_work_orders_json), recorded_requests)
    source = ApiBookingSource(client, COMPANY_A)

    # Booking 1 runs 09:00-10:00 and touches the window start
    bookings = source.list_active(
        "tech-1",
        start=datetime(2024, 6, 3, 10, tzinfo=timezone.utc),
        end=datetime(2024, 6, 3, 14, tzinfo=timezone.utc),
    )
    assert bookings == []

    bookings = source.list_active(
        "tech-1",
        start=datetime(2024, 6, 3, 9, 30, tzinfo=timezone.utc),
        end=datetime(2024, 6, 3, 14, 1, tzinfo=timezone.utc),
    )
    assert [b.id for b in bookings] == [1, 3]


def test_list_active_skips_zero_length_work_orders(recorded_requests):
    client = make_client(
        lambda r: httpx.Response(200, json=[
            {"id": 7, "technicianId": "tech-1", "scheduledDate": "2024-06-03T14:00:00Z",
             "estimatedDurationMinutes": 0, "status": "scheduled"},
            {"id": 8, "technicianId": "tech-1", "scheduledDate": "2024-06-03T15:00:00Z",
             "estimatedDurationMinutes": 30, "status": "scheduled"},
        ]),
        recorded_requests,
    )

    bookings = ApiBookingSource(client, COMPANY_A).list_active("tech-1")
    assert [b.id for b in bookings] == [8]
