"""Pydantic schemas for generated itineraries.

The model's JSON answer is validated against these before anything is
cached or persisted. Documents are dumped with camelCase keys and
without unset optional fields.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ItinerarySchema(BaseModel):
    """Base schema for itinerary documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ============ Activity Schemas ============


class ActivityPrice(ItinerarySchema):
    amount: str | float
    currency: str


class Coordinates(ItinerarySchema):
    latitude: str | float
    longitude: str | float


class ItineraryActivity(ItinerarySchema):
    """One scheduled activity within a day."""

    time: str
    title: str = Field(..., min_length=1)
    description: str
    location: str | None = None
    link: str | None = None
    amadeus_id: str | None = None
    rating: str | float | None = None
    price: ActivityPrice | None = None
    coordinates: Coordinates | None = None


class Day(ItinerarySchema):
    """One day of the plan, 1-based."""

    day: int = Field(..., ge=1)
    activities: list[ItineraryActivity]


class SuggestedBooking(ItinerarySchema):
    type: Literal["hotel", "transport", "activity"]
    name: str
    link: str


# ============ Itinerary Schemas ============


class ItineraryPlan(ItinerarySchema):
    """Itinerary as returned by the generative model."""

    destination: str
    days: list[Day] = Field(..., min_length=1)
    notes: str | None = None
    budget_tips: list[str] | None = None
    suggested_bookings: list[SuggestedBooking] | None = None

    @model_validator(mode="after")
    def check_day_sequence(self) -> "ItineraryPlan":
        for position, day in enumerate(self.days, start=1):
            if day.day != position:
                raise ValueError(
                    f"Day indices must be sequential from 1; "
                    f"got {day.day} at position {position}"
                )
        return self
