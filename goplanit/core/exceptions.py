"""Exceptions shared across the API and the itinerary pipeline.

HTTP-facing errors subclass ``HTTPException`` so FastAPI renders them
directly; pipeline errors are plain exceptions raised inside Celery tasks.
"""

from fastapi import HTTPException, status


class BadRequestError(HTTPException):
    """Raised for general bad request errors."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class InvalidPreferenceIdError(BadRequestError):
    """Raised when a preference id is not a 24-character hex string."""

    def __init__(self) -> None:
        super().__init__(detail="Invalid preference ID format")


class NotFoundError(HTTPException):
    """Raised when a resource is not found."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class PreferenceNotFoundHTTPError(NotFoundError):
    """Raised when a preference is not found in the store."""

    def __init__(self) -> None:
        super().__init__(detail="Preference not found")


# ============ Pipeline errors ============


class PipelineError(Exception):
    """Base class for itinerary pipeline failures."""


class PreferenceNotFoundError(PipelineError):
    """The preference a pipeline run refers to does not exist.

    Terminal for the run: retrying cannot make the record appear.
    """

    def __init__(self, preference_id: str) -> None:
        self.preference_id = preference_id
        super().__init__(f"Preference with ID {preference_id} not found")


class ItineraryGenerationError(PipelineError):
    """The generative model returned nothing usable."""


class NotificationError(PipelineError):
    """Sending the itinerary-ready email failed."""
