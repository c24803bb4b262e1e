import json
from datetime import date, time
from decimal import Decimal

import httpx
import pytest

from autoshop.clients.shop_api import AuthContext, ShopApiClient, to_wire
from autoshop.workflow.appointments import AppointmentWorkflow
from autoshop.workflow.enums import AppointmentStatus, ProjectStatus
from autoshop.workflow.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    TransportError,
    ValidationError,
)

APPOINTMENT = {
    "id": 5,
    "customerId": 1,
    "vehicleId": 11,
    "employeeId": None,
    "consultationType": "GENERAL_CHECKUP",
    "appointmentDate": "2026-03-02",
    "startTime": "09:00:00",
    "endTime": "10:00:00",
    "status": "PENDING",
}


def _envelope(data, status="success"):
    return {
        "status": status,
        "message": "ok",
        "data": data,
        "timestamp": "2026-03-02T09:00:00",
        "path": "/api/v1/appointments",
    }


def _client(handler, **kwargs):
    return ShopApiClient(
        AuthContext(token="t0k3n", user_id=1, role="admin"),
        base_url="http://shop.test/api/v1",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_envelope_is_unwrapped_and_token_sent():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=_envelope(APPOINTMENT))

    async with _client(handler) as client:
        appointment = await client.get_appointment(5)

    assert appointment.status is AppointmentStatus.PENDING
    assert appointment.appointment_date == date(2026, 3, 2)
    assert seen[0].url.path == "/api/v1/appointments/5"
    assert seen[0].headers["Authorization"] == "Bearer t0k3n"


@pytest.mark.asyncio
async def test_bare_payloads_are_accepted():
    def handler(request):
        return httpx.Response(
            200,
            json=[{"taskId": 1, "name": "Oil change", "estimatedCost": 100}, {"taskId": 2, "name": "Brakes"}],
        )

    async with _client(handler) as client:
        tasks = await client.list_tasks([2])

    assert [task.task_id for task in tasks] == [2]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code,error_cls",
    [
        (400, ValidationError),
        (422, ValidationError),
        (403, AuthorizationError),
        (404, NotFoundError),
        (409, InvalidStateError),
        (418, TransportError),
    ],
)
async def test_error_statuses_map_to_workflow_errors(status_code, error_cls):
    def handler(request):
        return httpx.Response(status_code, json={"status": "error", "message": "nope", "data": None})

    async with _client(handler) as client:
        with pytest.raises(error_cls) as excinfo:
            await client.get_project(9)

    assert excinfo.value.message == "nope"
    assert excinfo.value.details["status_code"] == status_code


@pytest.mark.asyncio
async def test_reads_are_retried_on_server_errors():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=_envelope([APPOINTMENT]))

    async with _client(handler, max_retries=3) as client:
        appointments = await client.list_appointments(status=AppointmentStatus.PENDING, customer_id=1)

    assert len(appointments) == 1
    assert len(calls) == 3
    assert calls[0].url.params["status"] == "PENDING"
    assert calls[0].url.params["customerId"] == "1"


@pytest.mark.asyncio
async def test_writes_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"detail": "down"})

    async with _client(handler, max_retries=3) as client:
        with pytest.raises(TransportError) as excinfo:
            await client.set_project_status(9, ProjectStatus.IN_PROGRESS.value)

    assert len(calls) == 1
    assert excinfo.value.status_code == 503
    assert excinfo.value.message == "down"


@pytest.mark.asyncio
async def test_network_failure_becomes_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler, max_retries=2) as client:
        with pytest.raises(TransportError):
            await client.get_appointment(5)


@pytest.mark.asyncio
async def test_workflow_runs_against_remote_service():
    requests = []

    def handler(request):
        requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json=_envelope(APPOINTMENT))
        return httpx.Response(200, json=_envelope({**APPOINTMENT, "employeeId": 42, "status": "CONFIRMED"}))

    async with _client(handler) as client:
        result = await AppointmentWorkflow(client).assign_employee(5, 42)

    assert result.value.employee_id == 42
    assert result.value.status is AppointmentStatus.CONFIRMED
    assert [r.method for r in requests] == ["GET", "PATCH"]
    assert json.loads(requests[-1].content) == {"employeeId": 42, "status": "CONFIRMED"}


@pytest.mark.asyncio
async def test_workflow_reports_remote_failure_as_result():
    def handler(request):
        return httpx.Response(500, json={"message": "boom"})

    async with _client(handler, max_retries=1) as client:
        result = await AppointmentWorkflow(client).approve(5)

    assert isinstance(result.error, TransportError)


def test_to_wire_serializes_dates_and_decimals():
    assert to_wire({"start_date": date(2026, 3, 2), "additional_cost": Decimal("12.50"), "task_ids": [1]}) == {
        "startDate": "2026-03-02",
        "additionalCost": "12.50",
        "taskIds": [1],
    }



@pytest.mark.asyncio
async def test_zero_retries_means_a_single_read_attempt():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"message": "busy"})

    async with _client(handler, max_retries=0) as client:
        with pytest.raises(TransportError):
            await client.get_project(9)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_booking_reads_the_vehicle_before_writing():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        return httpx.Response(
            200,
            json=_envelope(
                {
                    "id": 13,
                    "customerId": 2,
                    "vin": "1HGCM82633A004352",
                    "licensePlate": "WP-4352",
                    "make": "Honda",
                    "model": "Accord",
                    "year": 2018,
                }
            ),
        )

    async with _client(handler) as client:
        result = await AppointmentWorkflow(client).book(
            customer_id=1,
            vehicle_id=13,
            consultation_type="OTHER",
            appointment_date=date(2026, 3, 4),
            start_time=time(9, 0),
            end_time=time(10, 0),
        )

    assert isinstance(result.error, AuthorizationError)
    assert seen == [("GET", "/api/v1/vehicles/13")]
