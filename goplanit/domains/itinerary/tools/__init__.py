"""External API clients used to enrich generated itineraries."""

from goplanit.domains.itinerary.tools.amadeus import (
    Activity,
    AmadeusClient,
    City,
    TransferOffer,
    TripPurpose,
)
from goplanit.domains.itinerary.tools.base import (
    APIClientError,
    AuthenticationError,
    BaseAsyncAPIClient,
    RateLimitError,
    ToolError,
)

__all__ = [
    "Activity",
    "AmadeusClient",
    "APIClientError",
    "AuthenticationError",
    "BaseAsyncAPIClient",
    "City",
    "RateLimitError",
    "ToolError",
    "TransferOffer",
    "TripPurpose",
]
