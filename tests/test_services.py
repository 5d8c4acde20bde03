"""Tests for feature services: envelopes, wire names, query params."""

import pytest
from pydantic import ValidationError

from api_client import ApiClient
from auth.token_store import TokenStore
from conftest import BASE_URL, FakeTransport, response
from errors import ApplicationError
from models import (
    CreateBatchAvailabilityRequest,
    CreateClientRequest,
    CreateWorkoutPlanRequest,
    Exercise,
    WorkoutDay,
)
from services import AuthService, AvailabilityService, ClientService, WorkoutService, unwrap
from storage import MemoryStore

CLIENT = {
    "id": "c1",
    "name": "Ben",
    "email": "ben@example.com",
    "phone": None,
    "sessionsTotal": 10,
    "sessionsUsed": 3,
    "sessionsRemaining": 7,
    "packageExpiryDate": "2026-12-31",
    "isExpired": False,
    "createdAt": "2026-10-01T10:00:00Z",
}


def make_api(data, status=200):
    body = {"success": True, "data": data} if status < 400 else data
    transport = FakeTransport(lambda r: response(status, body))
    api = ApiClient(BASE_URL, TokenStore(MemoryStore()), transport=transport)
    api.set_auth_token("T1")
    return api, transport


def test_unwrap():
    assert unwrap({"success": True, "data": [1]}) == [1]
    with pytest.raises(ApplicationError):
        unwrap({"success": True})
    with pytest.raises(ApplicationError):
        unwrap(None)


@pytest.mark.asyncio
async def test_get_clients():
    api, transport = make_api({"clients": [CLIENT]})
    clients = await ClientService(api).get_clients()
    assert clients[0].sessions_remaining == 7
    assert clients[0].package_expiry_date == "2026-12-31"
    assert transport.requests[0].method == "GET"


@pytest.mark.asyncio
async def test_create_client_sends_camel_case():
    api, transport = make_api(CLIENT)
    request = CreateClientRequest(
        name=" Ben ", email="ben@example.com", sessions_total=10, package_expiry_date="2026-12-31",
    )
    client = await ClientService(api).create_client(request)
    assert client.id == "c1"
    assert transport.requests[0].body == {
        "name": "Ben",
        "email": "ben@example.com",
        "sessionsTotal": 10,
        "packageExpiryDate": "2026-12-31",
    }


def test_create_client_validation():
    with pytest.raises(ValidationError):
        CreateClientRequest(name="Ben", email="not-an-email", sessions_total=5, package_expiry_date="x")
    with pytest.raises(ValidationError):
        CreateClientRequest(name="Ben", email="ben@example.com", sessions_total=0, package_expiry_date="x")
    with pytest.raises(ValidationError):
        CreateClientRequest(name="  ", email="ben@example.com", sessions_total=1, package_expiry_date="x")


@pytest.mark.asyncio
async def test_delete_client():
    api, transport = make_api(None)
    await ClientService(api).delete_client("c1")
    assert transport.requests[0].method == "DELETE"
    assert transport.requests[0].url == "http://api.test/clients/c1"


@pytest.mark.asyncio
async def test_workout_plans():
    api, transport = make_api({"workoutPlans": [
        {"id": "p1", "name": "Push", "totalDays": 3, "totalExercises": 12, "createdAt": "2026-10-01"},
    ]})
    plans = await WorkoutService(api).get_workout_plans()
    assert plans[0].total_exercises == 12


@pytest.mark.asyncio
async def test_create_workout_plan():
    plan = {
        "id": "p1", "trainerId": "t1", "name": "Push", "notes": "",
        "days": [{"dayNumber": 1, "bodyPart": "Chest",
                  "exercises": [{"name": "Bench", "sets": "3", "reps": "8"}]}],
        "createdAt": "2026-10-01",
    }
    api, transport = make_api(plan)
    request = CreateWorkoutPlanRequest(name="Push", days=[
        WorkoutDay(day_number=1, body_part="Chest", exercises=[Exercise(name="Bench", sets="3", reps="8")]),
    ])
    result = await WorkoutService(api).create_workout_plan(request)
    assert result.days[0].exercises[0].name == "Bench"
    assert transport.requests[0].body["days"][0]["bodyPart"] == "Chest"

    await WorkoutService(api).delete_workout_plan("p1")
    assert transport.requests[1].url == "http://api.test/workout/plans/p1"


@pytest.mark.asyncio
async def test_get_availability_uses_query_params():
    api, transport = make_api([
        {"id": "a1", "trainerId": "t1", "date": "2026-10-20", "startTime": "09:00", "endTime": "10:00"},
    ])
    blocks = await AvailabilityService(api).get_availability("t1", "2026-10-20")
    assert blocks[0].start_time == "09:00"
    assert transport.requests[0].params == {"trainerId": "t1", "date": "2026-10-20"}


@pytest.mark.asyncio
async def test_batch_availability():
    api, transport = make_api({"availabilityBlocks": [], "sessionName": "PT"})
    request = CreateBatchAvailabilityRequest(
        dates=["2026-10-20", "2026-10-21"], start_time="09:00", end_time="10:00", session_name="PT",
    )
    result = await AvailabilityService(api).create_batch_availability(request)
    assert result.session_name == "PT"
    assert transport.requests[0].url == "http://api.test/calendar/availability/batch"
    assert transport.requests[0].body["startTime"] == "09:00"


@pytest.mark.asyncio
async def test_profile_and_refresh():
    api, transport = make_api({"id": "u1", "email": "a@b.co"})
    assert (await AuthService(api).get_profile()).id == "u1"

    api, transport = make_api({"accessToken": "T2", "refreshToken": "R2"})
    pair = await AuthService(api).refresh_token("R1")
    assert pair.refresh_token == "R2"
    assert transport.requests[0].body == {"refreshToken": "R1"}


@pytest.mark.asyncio
async def test_service_errors_propagate():
    api, _ = make_api({"message": "Client not found"}, status=404)
    with pytest.raises(ApplicationError, match="Client not found"):
        await ClientService(api).delete_client("nope")
