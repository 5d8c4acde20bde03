"""Feature services. Each call is one ApiClient request plus envelope unwrapping.

The backend wraps successes as `{"success": true, "data": ...}`; trainer ids
come from the bearer token on the server side.
"""

from typing import Any

from api_client import ApiClient
from constants import (
    AUTH_GOOGLE_PATH,
    AUTH_ME_PATH,
    AUTH_REFRESH_PATH,
    AVAILABILITY_BATCH_PATH,
    AVAILABILITY_PATH,
    CLIENTS_PATH,
    WORKOUT_PLANS_PATH,
)
from errors import ApplicationError
from models import (
    AuthUser,
    AvailabilityBlock,
    BatchAvailabilityResult,
    Client,
    CreateAvailabilityRequest,
    CreateBatchAvailabilityRequest,
    CreateClientRequest,
    CreateWorkoutPlanRequest,
    GoogleAuthResult,
    TokenPair,
    WorkoutPlan,
    WorkoutPlanListItem,
)
from transport import RequestOptions


def unwrap(response: Any) -> Any:
    if not isinstance(response, dict) or "data" not in response:
        raise ApplicationError("Malformed response", payload=response)
    return response["data"]


class _Service:
    def __init__(self, api: ApiClient):
        self._api = api


# ── Auth ───────────────────────────────────────────────

class AuthService(_Service):
    async def google_auth(self, id_token: str) -> GoogleAuthResult:
        resp = await self._api.post(AUTH_GOOGLE_PATH, {"idToken": id_token}, RequestOptions(auth=False))
        return GoogleAuthResult.model_validate(unwrap(resp))

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        resp = await self._api.post(
            AUTH_REFRESH_PATH, {"refreshToken": refresh_token}, RequestOptions(auth=False),
        )
        return TokenPair.model_validate(unwrap(resp))

    async def get_profile(self) -> AuthUser:
        return AuthUser.model_validate(unwrap(await self._api.get(AUTH_ME_PATH)))


# ── Clients ────────────────────────────────────────────

class ClientService(_Service):
    async def get_clients(self) -> list[Client]:
        data = unwrap(await self._api.get(CLIENTS_PATH))
        return [Client.model_validate(c) for c in data.get("clients", [])]

    async def create_client(self, request: CreateClientRequest) -> Client:
        resp = await self._api.post(CLIENTS_PATH, request.to_wire())
        return Client.model_validate(unwrap(resp))

    async def delete_client(self, client_id: str) -> None:
        await self._api.delete(f"{CLIENTS_PATH}/{client_id}")


# ── Workout plans ──────────────────────────────────────

class WorkoutService(_Service):
    async def create_workout_plan(self, request: CreateWorkoutPlanRequest) -> WorkoutPlan:
        resp = await self._api.post(WORKOUT_PLANS_PATH, request.to_wire())
        return WorkoutPlan.model_validate(unwrap(resp))

    async def get_workout_plans(self) -> list[WorkoutPlanListItem]:
        data = unwrap(await self._api.get(WORKOUT_PLANS_PATH))
        return [WorkoutPlanListItem.model_validate(p) for p in data.get("workoutPlans", [])]

    async def delete_workout_plan(self, plan_id: str) -> None:
        await self._api.delete(f"{WORKOUT_PLANS_PATH}/{plan_id}")


# ── Availability ───────────────────────────────────────

class AvailabilityService(_Service):
    async def create_availability(self, request: CreateAvailabilityRequest) -> AvailabilityBlock:
        resp = await self._api.post(AVAILABILITY_PATH, request.to_wire())
        return AvailabilityBlock.model_validate(unwrap(resp))

    async def create_batch_availability(
        self, request: CreateBatchAvailabilityRequest,
    ) -> BatchAvailabilityResult:
        resp = await self._api.post(AVAILABILITY_BATCH_PATH, request.to_wire())
        return BatchAvailabilityResult.model_validate(unwrap(resp))

    async def get_availability(self, trainer_id: str, date: str) -> list[AvailabilityBlock]:
        resp = await self._api.get(
            AVAILABILITY_PATH, RequestOptions(params={"trainerId": trainer_id, "date": date}),
        )
        return [AvailabilityBlock.model_validate(b) for b in unwrap(resp)]
