"""
Itinerary generation with an OpenAI chat model.

Builds the planning prompt from a preference and its enrichment data,
calls the model once, and validates the JSON it returns before anything
is cached or persisted.
"""

import json
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Protocol

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from goplanit.core.config import settings
from goplanit.core.exceptions import ItineraryGenerationError
from goplanit.domains.itinerary.schemas import ItineraryPlan
from goplanit.domains.itinerary.services.travel_data import EnrichmentData
from goplanit.domains.preference.schemas import trip_days
from goplanit.infra.redis import CacheService

logger = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "Failed to parse itinerary JSON from AI response"
STRUCTURE_ERROR_MESSAGE = "AI returned invalid itinerary structure"

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class PlannedTrip(Protocol):
    """Preference attributes the generator reads."""

    id: str
    start_date: datetime
    end_date: datetime
    budget: float
    interests: list[str]
    transport_preferences: list[str]
    accommodation_preferences: list[str]
    travelers: int
    trip_type: Any


# ============ LLM Configuration ============


def get_llm() -> ChatOpenAI:
    """Get configured ChatOpenAI instance."""
    return ChatOpenAI(
        model=settings.OPENAI_MODEL,
        api_key=settings.OPENAI_API_KEY,
        temperature=settings.OPENAI_TEMPERATURE,
        max_tokens=settings.OPENAI_MAX_TOKENS,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
    )


# ============ Prompts ============


ITINERARY_PROMPT = """You are a world-class professional travel planner with deep expertise in personalized trip planning.

Your task: Generate a detailed, day-by-day travel itinerary tailored to the traveler's preferences, using the real travel data below whenever it is available.

REQUIREMENTS:
- Respond with a single JSON object only.
- Do NOT include markdown, code fences, comments or explanations.
- Produce exactly {days} entries in "days", numbered 1 to {days}.
- Prefer the real activities listed below over invented ones.
- Follow this JSON schema:

{{
  "destination": string,
  "days": [
    {{
      "day": number,
      "activities": [
        {{
          "time": string,
          "title": string,
          "description": string,
          "location"?: string,
          "link"?: string,
          "amadeusId"?: string,
          "rating"?: string,
          "price"?: {{ "amount": string, "currency": string }},
          "coordinates"?: {{ "latitude": string, "longitude": string }}
        }}
      ]
    }}
  ],
  "notes"?: string,
  "budgetTips"?: string[],
  "suggestedBookings"?: [
    {{ "type": "hotel" | "transport" | "activity", "name": string, "link": string }}
  ]
}}

INPUT DETAILS:
- Number of days: {days}
- Approximate budget: {budget} USD
- Interests: {interests}
- Transport preferences: {transport}
- Accommodation preferences: {accommodation}
- Trip type: {trip_type}
- Travelers: {travelers}{context}

ADDITIONAL INSTRUCTIONS:
- Include amadeusId, rating, price and coordinates for real activities.
- Use booking links from the activity data when present.
- Suggest realistic timing and logistics between activities.
- Omit optional fields you have no information for.

Output valid JSON only."""


def build_context(enrichment: EnrichmentData) -> str:
    """Render the enrichment sections appended to the prompt."""
    sections: list[str] = []

    city = enrichment.city
    if city is not None:
        country = city.address.country_code if city.address else None
        line = f"DESTINATION INFO: {city.name}"
        if country:
            line += f", {country}"
        if city.iata_code:
            line += f" (IATA: {city.iata_code})"
        sections.append(line)

    purpose = enrichment.trip_purpose
    if purpose is not None:
        confidence = round(purpose.probability * 100)
        sections.append(
            f"TRIP PURPOSE ANALYSIS: This trip is predicted to be "
            f"{purpose.result.lower()} ({confidence}% confidence)"
        )

    if enrichment.activities:
        lines = []
        for activity in enrichment.activities:
            line = f"- {activity.name}"
            if activity.short_description:
                line += f": {activity.short_description}"
            details = []
            if activity.rating is not None:
                details.append(f"Rating: {activity.rating}/5")
            if activity.price and activity.price.amount is not None:
                details.append(
                    f"Price: {activity.price.amount} {activity.price.currency_code or ''}".rstrip()
                )
            if details:
                line += f" ({', '.join(details)})"
            lines.append(line)
        sections.append(
            "REAL AVAILABLE ACTIVITIES (use these in your itinerary):\n" + "\n".join(lines)
        )

    return "".join(f"\n\n{section}" for section in sections)


def strip_code_fences(content: str) -> str:
    """Return the body of a fenced block if present, else the trimmed text."""
    match = _CODE_FENCE.search(content)
    if match and match.group(1):
        return match.group(1)
    return content.strip()


def parse_itinerary(content: str, expected_days: int) -> ItineraryPlan:
    """
    Parse and validate the model's answer.

    Raises:
        ItineraryGenerationError: On unparseable JSON, a structure that does
            not match the itinerary schema, or the wrong number of days
    """
    try:
        parsed = json.loads(strip_code_fences(content))
    except ValueError as e:
        raise ItineraryGenerationError(PARSE_ERROR_MESSAGE) from e

    if not isinstance(parsed, dict):
        raise ItineraryGenerationError(STRUCTURE_ERROR_MESSAGE)

    try:
        plan = ItineraryPlan.model_validate(parsed)
    except ValidationError as e:
        raise ItineraryGenerationError(f"{STRUCTURE_ERROR_MESSAGE}: {e.error_count()} errors") from e

    if len(plan.days) != expected_days:
        raise ItineraryGenerationError(
            f"AI returned {len(plan.days)} days, expected {expected_days}"
        )
    return plan


def merge_enrichment(document: dict[str, Any], enrichment: EnrichmentData) -> dict[str, Any]:
    """Attach resolved enrichment payloads; unresolved ones are left out."""
    merged = dict(document)
    if enrichment.city is not None:
        merged["cityInfo"] = enrichment.city.to_provider_dict()
    if enrichment.trip_purpose is not None:
        merged["tripPurpose"] = enrichment.trip_purpose.to_provider_dict()
    if enrichment.activities:
        merged["availableActivities"] = [a.to_provider_dict() for a in enrichment.activities]
    if enrichment.transfers:
        merged["transferOptions"] = [t.to_provider_dict() for t in enrichment.transfers]
    return merged


class ItineraryGenerator:
    """
    Generates itineraries, fronted by a per-preference cache.

    Within the cache TTL, repeated calls for the same preference return the
    stored document without calling the model or the enrichment loader.
    """

    KEY_PREFIX = "itinerary"

    def __init__(
        self,
        cache: CacheService,
        llm: BaseChatModel | None = None,
        ttl: int | None = None,
    ) -> None:
        self.cache = cache
        self._llm = llm
        self.ttl = ttl or settings.ITINERARY_CACHE_TTL_SECONDS
        self.prompt = ChatPromptTemplate.from_template(ITINERARY_PROMPT)

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = get_llm()
        return self._llm

    def _get_key(self, preference_id: str) -> str:
        return f"{self.KEY_PREFIX}:{preference_id}"

    def build_prompt(self, trip: PlannedTrip, enrichment: EnrichmentData) -> str:
        """Render the planning prompt as plain text."""
        return self.prompt.format(**self._prompt_values(trip, enrichment))

    async def generate(
        self,
        trip: PlannedTrip,
        load_enrichment: Callable[[], Awaitable[EnrichmentData]],
    ) -> dict[str, Any]:
        """
        Return the itinerary document for a preference.

        Args:
            trip: The stored preference
            load_enrichment: Fetches enrichment data; only awaited on a
                cache miss

        Raises:
            ItineraryGenerationError: If the model output is unusable
        """

        async def compute() -> dict[str, Any]:
            enrichment = await load_enrichment()
            return await self.generate_fresh(trip, enrichment)

        return await self.cache.get_or_compute(self._get_key(trip.id), compute, self.ttl)

    async def generate_fresh(
        self,
        trip: PlannedTrip,
        enrichment: EnrichmentData,
    ) -> dict[str, Any]:
        """Call the model and build a validated itinerary document."""
        expected_days = trip_days(trip.start_date, trip.end_date)
        messages = self.prompt.format_messages(
            **self._prompt_values(trip, enrichment)
        )

        response = await self.llm.ainvoke(messages)
        content = response.content if isinstance(response.content, str) else ""
        if not content.strip():
            raise ItineraryGenerationError("No content generated by the model")

        plan = parse_itinerary(content, expected_days)
        logger.info(
            f"Generated {expected_days}-day itinerary for preference {trip.id} "
            f"({plan.destination})"
        )
        return merge_enrichment(plan.to_document(), enrichment)

    def _prompt_values(self, trip: PlannedTrip, enrichment: EnrichmentData) -> dict[str, Any]:
        trip_type = getattr(trip.trip_type, "value", trip.trip_type) or "LEISURE"
        return {
            "days": trip_days(trip.start_date, trip.end_date),
            "budget": trip.budget or 0,
            "interests": ", ".join(trip.interests or []) or "general sightseeing",
            "transport": ", ".join(trip.transport_preferences or []) or "public transport",
            "accommodation": ", ".join(trip.accommodation_preferences or []) or "budget hotels",
            "trip_type": str(trip_type).lower(),
            "travelers": trip.travelers or 1,
            "context": build_context(enrichment),
        }
