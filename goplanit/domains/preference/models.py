"""SQLAlchemy models for the Preference domain."""

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from goplanit.infra.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class TripType(str, enum.Enum):
    """Enum for trip type."""

    LEISURE = "LEISURE"
    BUSINESS = "BUSINESS"


class Preference(Base):
    """A user's trip request and, once generated, its itinerary.

    Attributes:
        id: 24-character hex document id - inherited from Base
        user_id: Owning user
        email: Contact address for the itinerary-ready email
        start_date: Trip start
        end_date: Trip end, strictly after start_date
        itinerary: Generated itinerary document, null until the pipeline
            attaches it
        completed_at: When the itinerary was attached
    """

    __tablename__ = "preferences"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    end_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    budget: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0,
    )
    interests: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    transport_preferences: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    accommodation_preferences: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    destination: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    origin_city: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    origin_location_code: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
    )
    destination_location_code: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
    )
    travelers: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )
    trip_type: Mapped[TripType] = mapped_column(
        Enum(TripType, native_enum=False, length=16),
        nullable=False,
        default=TripType.LEISURE,
    )
    itinerary: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument,
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="date_range"),
        CheckConstraint("travelers BETWEEN 1 AND 9", name="travelers_range"),
        CheckConstraint("budget >= 0", name="budget_non_negative"),
        Index("ix_preferences_user_created", "user_id", "created_at"),
    )

    @property
    def has_itinerary(self) -> bool:
        """Check if the pipeline has attached an itinerary."""
        return self.itinerary is not None

    def __repr__(self) -> str:
        return f"<Preference(id={self.id}, user_id={self.user_id})>"
