"""Amadeus API client for travel enrichment data.

This client integrates with the Amadeus Self-Service APIs to provide:
- City lookup by keyword
- Tours and activities near a coordinate
- Trip purpose prediction
- Private transfer offers

Records keep the provider's shape (camelCase keys) and preserve any
fields this module does not model.
"""

import asyncio
import logging
import time
from datetime import date, datetime
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from goplanit.core.config import settings
from goplanit.domains.itinerary.tools.base import (
    APIClientError,
    AuthenticationError,
    BaseAsyncAPIClient,
)
from goplanit.infra.redis import CacheService

logger = logging.getLogger(__name__)

TOKEN_CACHE_KEY = "amadeus:token"
TOKEN_EXPIRY_BUFFER_SECONDS = 60
DEFAULT_TOKEN_LIFETIME_SECONDS = 1799


# ============ Provider Records ============


class ProviderRecord(BaseModel):
    """Base for Amadeus records: camelCase on the wire, extras kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_provider_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class GeoCode(ProviderRecord):
    latitude: float
    longitude: float


class Address(ProviderRecord):
    country_code: str | None = None
    state_code: str | None = None


class City(ProviderRecord):
    """City returned by the locations/cities endpoint."""

    name: str
    iata_code: str | None = None
    address: Address | None = None
    geo_code: GeoCode | None = None
    time_zone: str | None = None


class ActivityPrice(ProviderRecord):
    amount: float | None = None
    currency_code: str | None = None


class Activity(ProviderRecord):
    """Tour or activity near a location."""

    id: str
    name: str
    short_description: str | None = None
    geo_code: GeoCode | None = None
    rating: float | None = None
    pictures: list[str] | None = None
    booking_link: str | None = None
    price: ActivityPrice | None = None
    minimum_duration: str | None = None


class TripPurpose(ProviderRecord):
    """Predicted purpose of a trip."""

    id: str | None = None
    result: str
    probability: float


class Quotation(ProviderRecord):
    monetary_amount: str | float | None = None
    currency_code: str | None = None


class TransferOffer(ProviderRecord):
    """Transfer quote from the transfer-offers endpoint."""

    id: str
    transfer_type: str
    start: dict[str, Any] | None = None
    end: dict[str, Any] | None = None
    vehicle: dict[str, Any] | None = None
    quotation: Quotation | None = None
    distance: dict[str, Any] | None = None


# ============ Amadeus API Client ============


class AmadeusClient(BaseAsyncAPIClient):
    """Async client for the Amadeus API.

    The OAuth2 bearer token is kept in-process and mirrored into the shared
    cache so other workers can reuse it until 60 s before it expires.
    """

    def __init__(
        self,
        cache: CacheService | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_backoff: float = 0.5,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id or settings.AMADEUS_CLIENT_ID
        self.client_secret = client_secret or settings.AMADEUS_CLIENT_SECRET
        super().__init__(
            base_url or settings.AMADEUS_BASE_URL,
            timeout=timeout or settings.AMADEUS_TIMEOUT_SECONDS,
            retry_backoff=retry_backoff,
            http_client=http_client,
        )
        self.cache = cache
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    async def _get_headers(self) -> dict[str, str]:
        """Get headers with authentication token."""
        token = await self._ensure_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _has_valid_token(self) -> bool:
        return bool(self._access_token) and time.time() < self._token_expires_at

    async def _ensure_token(self) -> str:
        """Ensure we have a valid access token."""
        if self._has_valid_token():
            return self._access_token  # type: ignore[return-value]

        async with self._token_lock:
            # Another coroutine may have refreshed while we waited
            if self._has_valid_token():
                return self._access_token  # type: ignore[return-value]

            if self.cache is not None:
                cached = await self.cache.get(TOKEN_CACHE_KEY)
                if cached and cached.get("expiry", 0) > time.time():
                    self._access_token = cached["token"]
                    self._token_expires_at = float(cached["expiry"])
                    return self._access_token

            return await self._fetch_token()

    async def _fetch_token(self) -> str:
        try:
            response = await self.client.post(
                "/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except httpx.RequestError as e:
            raise APIClientError(
                f"Token request error: {e}",
                tool_name=self.name,
            ) from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Failed to authenticate with Amadeus: {response.text}",
                tool_name=self.name,
                details={"status_code": response.status_code},
            )

        data = response.json()
        expires_in = int(data.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS))
        lifetime = max(1, expires_in - TOKEN_EXPIRY_BUFFER_SECONDS)

        self._access_token = data["access_token"]
        self._token_expires_at = time.time() + lifetime

        if self.cache is not None:
            await self.cache.set(
                TOKEN_CACHE_KEY,
                {"token": self._access_token, "expiry": self._token_expires_at},
                ttl=lifetime,
            )
        logger.info("Obtained new Amadeus access token")
        return self._access_token

    # ==================== Resource calls ====================

    async def search_city(self, keyword: str) -> City | None:
        """Resolve a keyword to the best-matching city."""
        response = await self.get(
            "/v1/reference-data/locations/cities",
            params={"keyword": keyword, "max": 1},
        )
        data = response.get("data") or []
        if not data:
            return None
        return City.model_validate(data[0])

    async def search_activities(
        self,
        latitude: float,
        longitude: float,
        radius: int = 20,
    ) -> list[Activity]:
        """Tours and activities within ``radius`` km of a coordinate."""
        response = await self.get(
            "/v1/shopping/activities",
            params={
                "latitude": latitude,
                "longitude": longitude,
                "radius": radius,
            },
        )
        return [Activity.model_validate(item) for item in response.get("data") or []]

    async def predict_trip_purpose(
        self,
        origin: str,
        destination: str,
        departure_date: date | str,
        return_date: date | str,
    ) -> TripPurpose | None:
        """Predict whether a trip is for business or leisure."""
        response = await self.get(
            "/v1/travel/predictions/trip-purpose",
            params={
                "originLocationCode": origin,
                "destinationLocationCode": destination,
                "departureDate": _iso_date(departure_date),
                "returnDate": _iso_date(return_date),
            },
        )
        data = response.get("data")
        if not data:
            return None
        return TripPurpose.model_validate(data)

    async def search_transfers(
        self,
        start_location_code: str,
        end_city: City,
        start_datetime: datetime,
        passengers: int = 1,
        transfer_type: str = "PRIVATE",
    ) -> list[TransferOffer]:
        """Transfer quotes from a location code to a resolved city."""
        body: dict[str, Any] = {
            "startLocationCode": start_location_code,
            "endCityName": end_city.name,
            "transferType": transfer_type,
            "startDateTime": start_datetime.strftime("%Y-%m-%dT%H:%M:%S"),
            "passengers": passengers,
        }
        if end_city.address and end_city.address.country_code:
            body["endCountryCode"] = end_city.address.country_code
        if end_city.geo_code:
            body["endGeoCode"] = (
                f"{end_city.geo_code.latitude},{end_city.geo_code.longitude}"
            )

        response = await self.post("/v1/shopping/transfer-offers", json_data=body)
        return [
            TransferOffer.model_validate(item) for item in response.get("data") or []
        ]


def _iso_date(value: date | str) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value
