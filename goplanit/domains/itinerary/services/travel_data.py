"""
Travel-data gateway: cached, concurrency-bounded Amadeus lookups.

Every source feeding an itinerary fails independently. ``enrich`` always
returns whatever it could resolve and never raises for a provider error.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol, TypeVar

from goplanit.core.config import settings
from goplanit.domains.itinerary.tools.amadeus import (
    Activity,
    AmadeusClient,
    City,
    TransferOffer,
    TripPurpose,
)
from goplanit.infra.redis import CacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TripRequest(Protocol):
    """Preference attributes the gateway reads."""

    destination: str | None
    destination_location_code: str
    origin_location_code: str
    start_date: datetime
    end_date: datetime
    travelers: int


@dataclass
class EnrichmentData:
    """Whatever the travel-data provider could resolve for a trip."""

    city: City | None = None
    trip_purpose: TripPurpose | None = None
    activities: list[Activity] = field(default_factory=list)
    transfers: list[TransferOffer] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (
            self.city is None
            and self.trip_purpose is None
            and not self.activities
            and not self.transfers
        )


class TravelDataGateway:
    """Cached access to Amadeus for itinerary enrichment."""

    CITY_KEY_PREFIX = "amadeus:city"
    ACTIVITIES_KEY_PREFIX = "amadeus:activities"
    TRIP_PURPOSE_KEY_PREFIX = "trip-purpose"

    def __init__(
        self,
        client: AmadeusClient,
        cache: CacheService,
        concurrency: int | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self._semaphore = asyncio.Semaphore(
            concurrency or settings.ENRICHMENT_CONCURRENCY
        )

    async def _limited(self, call: Callable[[], Awaitable[T]]) -> T:
        async with self._semaphore:
            return await call()

    # ==================== Cities ====================

    def _city_key(self, query: str) -> str:
        return f"{self.CITY_KEY_PREFIX}:{query.lower()}"

    async def search_cities_batch(self, queries: list[str]) -> list[City | None]:
        """
        Resolve several city keywords, one result slot per query.

        Cached entries are served first; misses are fetched concurrently.
        A failed lookup leaves ``None`` in its slot.
        """
        if not queries:
            return []

        cached = await self.cache.mget([self._city_key(q) for q in queries])
        results: list[City | None] = [
            City.model_validate(value) if value else None for value in cached
        ]
        missing = [i for i, value in enumerate(results) if value is None]
        if not missing:
            return results

        async def fetch(query: str) -> City | None:
            return await self._limited(lambda: self.client.search_city(query))

        fetched = await asyncio.gather(
            *(fetch(queries[i]) for i in missing),
            return_exceptions=True,
        )

        for index, outcome in zip(missing, fetched):
            query = queries[index]
            if isinstance(outcome, Exception):
                logger.warning(f"City lookup failed for {query!r}: {outcome}")
                continue
            if outcome is None:
                continue
            results[index] = outcome
            await self.cache.set(
                self._city_key(query),
                outcome.to_provider_dict(),
                settings.CITY_CACHE_TTL_SECONDS,
            )
        return results

    async def search_city(self, query: str) -> City | None:
        return (await self.search_cities_batch([query]))[0]

    # ==================== Activities ====================

    async def search_activities(
        self,
        latitude: float,
        longitude: float,
        radius: int | None = None,
    ) -> list[Activity]:
        """Activities near a coordinate. Provider errors propagate."""
        radius = radius or settings.ACTIVITIES_RADIUS_KM
        key = f"{self.ACTIVITIES_KEY_PREFIX}:{latitude}:{longitude}:{radius}"

        async def compute() -> list[dict[str, Any]]:
            activities = await self._limited(
                lambda: self.client.search_activities(latitude, longitude, radius)
            )
            return [activity.to_provider_dict() for activity in activities]

        raw = await self.cache.get_or_compute(
            key, compute, settings.ACTIVITIES_CACHE_TTL_SECONDS
        )
        return [Activity.model_validate(item) for item in raw]

    # ==================== Trip purpose ====================

    async def predict_trip_purpose(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        return_date: date,
    ) -> TripPurpose | None:
        """Predict the trip purpose; an empty answer is not cached."""
        key = (
            f"{self.TRIP_PURPOSE_KEY_PREFIX}:{origin}:{destination}:"
            f"{departure_date.isoformat()}:{return_date.isoformat()}"
        )

        async def compute() -> dict[str, Any] | None:
            purpose = await self._limited(
                lambda: self.client.predict_trip_purpose(
                    origin, destination, departure_date, return_date
                )
            )
            return purpose.to_provider_dict() if purpose else None

        raw = await self.cache.get_or_compute(
            key, compute, settings.TRIP_PURPOSE_CACHE_TTL_SECONDS
        )
        return TripPurpose.model_validate(raw) if raw else None

    # ==================== Transfers ====================

    async def search_transfers(
        self,
        origin_code: str,
        city: City,
        start: datetime,
        passengers: int = 1,
    ) -> list[TransferOffer]:
        """Private transfer quotes to the destination city; not cached."""
        return await self._limited(
            lambda: self.client.search_transfers(origin_code, city, start, passengers)
        )

    # ==================== Enrichment ====================

    async def enrich(self, trip: TripRequest) -> EnrichmentData:
        """
        Collect enrichment data for a trip.

        City and trip purpose are looked up together; activities and
        transfers follow once the city is known. Each failure is logged
        and leaves its part of the result empty.
        """
        data = EnrichmentData()
        keyword = trip.destination or trip.destination_location_code

        city, purpose = await asyncio.gather(
            self.search_city(keyword),
            self.predict_trip_purpose(
                trip.origin_location_code,
                trip.destination_location_code,
                trip.start_date.date(),
                trip.end_date.date(),
            ),
            return_exceptions=True,
        )

        if isinstance(city, Exception):
            logger.warning(f"City lookup failed for {keyword!r}: {city}")
        elif city is not None:
            data.city = city

        if isinstance(purpose, Exception):
            logger.warning(f"Trip purpose prediction failed: {purpose}")
        elif purpose is not None:
            data.trip_purpose = purpose

        if data.city is None:
            return data

        followups: list[Awaitable[Any]] = []
        if data.city.geo_code is not None:
            followups.append(
                self.search_activities(
                    data.city.geo_code.latitude,
                    data.city.geo_code.longitude,
                )
            )
        else:
            followups.append(_no_results())
        followups.append(
            self.search_transfers(
                trip.origin_location_code,
                data.city,
                trip.start_date,
                trip.travelers or 1,
            )
        )

        activities, transfers = await asyncio.gather(*followups, return_exceptions=True)

        if isinstance(activities, Exception):
            logger.warning(f"Activities lookup failed for {data.city.name}: {activities}")
        else:
            data.activities = activities

        if isinstance(transfers, Exception):
            logger.warning(f"Transfer search failed for {data.city.name}: {transfers}")
        else:
            data.transfers = transfers

        return data


async def _no_results() -> list[Any]:
    return []
