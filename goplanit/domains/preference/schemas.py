"""Pydantic schemas for the Preference domain.

Request and response bodies use camelCase keys; attributes stay snake_case.
"""

import math
from datetime import date, datetime, time, timezone
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from goplanit.domains.preference.models import Preference, TripType

MISSING_FIELDS_MESSAGE = (
    "Missing required fields: userId, email, travelDates.start, travelDates.end"
)
MISSING_LOCATION_CODES_MESSAGE = "Missing required location codes for travel planning"
DATE_ORDER_MESSAGE = "End date must be after start date"
PAST_START_MESSAGE = "Start date cannot be in the past"

MAX_PAGE_SIZE = 100


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _as_utc_datetime(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` or ISO datetimes; naive values are taken as UTC."""
    if isinstance(value, str) and len(value) == 10:
        value = date.fromisoformat(value)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def trip_days(start: datetime, end: datetime) -> int:
    """Number of itinerary days for a trip: ``max(1, ceil(span / 1 day))``."""
    span = (end - start).total_seconds() / 86400
    return max(1, math.ceil(span))


# ============ Request Schemas ============


class TravelDates(CamelModel):
    """Trip date range."""

    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Any:
        return _as_utc_datetime(value)

    @field_validator("start", "end")
    @classmethod
    def ensure_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class PreferenceCreate(CamelModel):
    """Intake request for a new trip preference."""

    user_id: str | None = None
    email: str | None = None
    travel_dates: TravelDates | None = None
    budget: float = Field(default=0, ge=0)
    interests: list[str] = Field(default_factory=list)
    transport_preferences: list[str] = Field(default_factory=list)
    accommodation_preferences: list[str] = Field(default_factory=list)
    destination: str | None = Field(None, max_length=255)
    origin_city: str | None = Field(None, max_length=255)
    origin_location_code: str | None = Field(None, max_length=8)
    destination_location_code: str | None = Field(None, max_length=8)
    travelers: int = Field(default=1, ge=1, le=9)
    trip_type: TripType = TripType.LEISURE
    priority: Literal["low", "normal", "high"] | None = None

    @field_validator(
        "budget",
        "interests",
        "transport_preferences",
        "accommodation_preferences",
        "travelers",
        "trip_type",
        mode="before",
    )
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        """An explicit null means the field was left out."""
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    @field_validator("origin_location_code", "destination_location_code")
    @classmethod
    def normalize_code(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @model_validator(mode="after")
    def check_trip(self) -> "PreferenceCreate":
        dates = self.travel_dates
        if (
            not self.user_id
            or not self.email
            or dates is None
            or dates.start is None
            or dates.end is None
        ):
            raise ValueError(MISSING_FIELDS_MESSAGE)
        if not self.origin_location_code or not self.destination_location_code:
            raise ValueError(MISSING_LOCATION_CODES_MESSAGE)
        if dates.start >= dates.end:
            raise ValueError(DATE_ORDER_MESSAGE)
        if dates.start < datetime.now(timezone.utc):
            raise ValueError(PAST_START_MESSAGE)
        return self

    def to_model_fields(self) -> dict[str, Any]:
        """Column values for a new ``Preference`` row."""
        dates = self.travel_dates
        if dates is None:
            raise ValueError(MISSING_FIELDS_MESSAGE)
        return {
            "user_id": self.user_id,
            "email": self.email,
            "start_date": dates.start,
            "end_date": dates.end,
            "budget": self.budget,
            "interests": self.interests,
            "transport_preferences": self.transport_preferences,
            "accommodation_preferences": self.accommodation_preferences,
            "destination": self.destination,
            "origin_city": self.origin_city,
            "origin_location_code": self.origin_location_code,
            "destination_location_code": self.destination_location_code,
            "travelers": self.travelers,
            "trip_type": self.trip_type,
        }


class PreferenceUpdate(CamelModel):
    """Restricted update: only these fields may change after intake.

    Any other key in the request body is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    interests: list[str] | None = None
    budget: float | None = Field(None, ge=0)
    transport_preferences: list[str] | None = None
    accommodation_preferences: list[str] | None = None


# ============ Response Schemas ============


class PreferenceResponse(CamelModel):
    """Stored preference document."""

    id: str
    user_id: str
    email: str
    travel_dates: TravelDates
    budget: float
    interests: list[str]
    transport_preferences: list[str]
    accommodation_preferences: list[str]
    destination: str | None = None
    origin_city: str | None = None
    origin_location_code: str
    destination_location_code: str
    travelers: int
    trip_type: TripType
    itinerary: dict[str, Any] | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, preference: Preference) -> "PreferenceResponse":
        return cls(
            id=preference.id,
            user_id=preference.user_id,
            email=preference.email,
            travel_dates=TravelDates(
                start=preference.start_date,
                end=preference.end_date,
            ),
            budget=preference.budget or 0,
            interests=preference.interests or [],
            transport_preferences=preference.transport_preferences or [],
            accommodation_preferences=preference.accommodation_preferences or [],
            destination=preference.destination,
            origin_city=preference.origin_city,
            origin_location_code=preference.origin_location_code,
            destination_location_code=preference.destination_location_code,
            travelers=preference.travelers or 1,
            trip_type=preference.trip_type or TripType.LEISURE,
            itinerary=preference.itinerary,
            completed_at=preference.completed_at,
            created_at=preference.created_at,
            updated_at=preference.updated_at,
        )


class PreferenceDetailResponse(PreferenceResponse):
    """Preference document plus a coarse processing flag."""

    processing_status: Literal["completed", "processing"]


class PreferenceCreatedResponse(CamelModel):
    """Body of the 202 returned by intake."""

    id: str
    message: str
    estimated_processing_time: str
    status_endpoint: str


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class PreferenceListResponse(CamelModel):
    """One page of a user's preferences, newest first."""

    preferences: list[PreferenceResponse]
    pagination: Pagination


class ProcessingStatusResponse(CamelModel):
    """Progress record served to polling clients."""

    preference_id: str
    status: Literal["started", "generating", "saving", "error", "completed"]
    progress: int = Field(..., ge=0, le=100)
    message: str
    timestamp: datetime
    started_at: datetime | None = None
    error: str | None = None
