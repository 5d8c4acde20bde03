"""Backend payloads. snake_case in Python, camelCase on the wire."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Auth ──────────────────────────────────────────────────

class AuthUser(WireModel):
    id: str
    email: str
    name: str | None = None
    picture: str | None = None


class TokenPair(WireModel):
    access_token: str
    refresh_token: str


class GoogleAuthResult(TokenPair):
    user: AuthUser


# ── Clients ───────────────────────────────────────────────

class Client(WireModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    sessions_total: int = 0
    sessions_used: int = 0
    sessions_remaining: int = 0
    package_expiry_date: str
    is_expired: bool = False
    created_at: str


class CreateClientRequest(WireModel):
    name: str = Field(min_length=1)
    email: str
    phone: str | None = None
    sessions_total: int = Field(gt=0)
    package_expiry_date: str

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        v = v.strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("invalid email")
        return v


# ── Workout ───────────────────────────────────────────────

class Exercise(WireModel):
    id: str | None = None
    name: str
    sets: str
    reps: str


class WorkoutDay(WireModel):
    id: str | None = None
    day_number: int
    body_part: str
    exercises: list[Exercise] = []


class CreateWorkoutPlanRequest(WireModel):
    name: str
    days: list[WorkoutDay]
    notes: str = ""


class WorkoutPlan(WireModel):
    id: str
    trainer_id: str
    name: str
    days: list[WorkoutDay] = []
    notes: str = ""
    created_at: str


class WorkoutPlanListItem(WireModel):
    id: str
    name: str
    total_days: int = 0
    total_exercises: int = 0
    created_at: str


# ── Availability ──────────────────────────────────────────

class AvailabilityBlock(WireModel):
    id: str
    trainer_id: str
    date: str
    start_time: str
    end_time: str


class CreateAvailabilityRequest(WireModel):
    date: str
    start_time: str
    end_time: str


class CreateBatchAvailabilityRequest(WireModel):
    dates: list[str] = Field(min_length=1)
    start_time: str
    end_time: str
    session_name: str | None = None


class BatchAvailabilityResult(WireModel):
    availability_blocks: list[AvailabilityBlock] = []
    session_name: str | None = None
