"""
Tests for itinerary generation.

The chat model is an AsyncMock returning canned AIMessages, so the tests
cover prompt assembly, output validation and the per-preference cache.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from goplanit.core.exceptions import ItineraryGenerationError
from goplanit.domains.itinerary.services.generator import (
    PARSE_ERROR_MESSAGE,
    ItineraryGenerator,
    build_context,
    merge_enrichment,
    parse_itinerary,
    strip_code_fences,
)
from goplanit.domains.itinerary.services.travel_data import EnrichmentData
from goplanit.domains.itinerary.tools.amadeus import Activity, City, TripPurpose
from goplanit.domains.preference.models import TripType
from tests.factories import ai_message, itinerary_json, make_preference

PARIS = City.model_validate(
    {
        "name": "Paris",
        "iataCode": "PAR",
        "address": {"countryCode": "FR"},
        "geoCode": {"latitude": 48.85, "longitude": 2.35},
    }
)
LOUVRE = Activity.model_validate(
    {
        "id": "a1",
        "name": "Louvre tour",
        "shortDescription": "Skip-the-line entry",
        "rating": 4.7,
        "price": {"amount": 65.0, "currencyCode": "EUR"},
    }
)
LEISURE = TripPurpose.model_validate({"result": "LEISURE", "probability": 0.87})


def _llm(*contents: str) -> MagicMock:
    llm = MagicMock()
    llm.ainvoke = AsyncMock(side_effect=[ai_message(c) for c in contents])
    return llm


class TestParsing:
    """Tests for turning model output into a validated plan."""

    def test_strip_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_bare_fence(self):
        assert strip_code_fences('Here you go:\n```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unfenced_text_trimmed(self):
        assert strip_code_fences('  {"a": 1}\n') == '{"a": 1}'

    def test_parse_fenced_answer(self):
        plan = parse_itinerary(itinerary_json(3, fenced=True), expected_days=3)

        assert plan.destination == "Paris"
        assert [d.day for d in plan.days] == [1, 2, 3]

    def test_invalid_json(self):
        with pytest.raises(ItineraryGenerationError, match=PARSE_ERROR_MESSAGE):
            parse_itinerary("Sorry, I can't help with that.", expected_days=3)

    def test_non_object_json(self):
        with pytest.raises(ItineraryGenerationError, match="invalid itinerary structure"):
            parse_itinerary("[1, 2, 3]", expected_days=3)

    def test_missing_days(self):
        with pytest.raises(ItineraryGenerationError, match="invalid itinerary structure"):
            parse_itinerary(json.dumps({"destination": "Paris"}), expected_days=3)

    def test_days_out_of_sequence(self):
        payload = json.loads(itinerary_json(2))
        payload["days"][1]["day"] = 5

        with pytest.raises(ItineraryGenerationError):
            parse_itinerary(json.dumps(payload), expected_days=2)

    def test_wrong_day_count(self):
        with pytest.raises(ItineraryGenerationError, match="returned 2 days, expected 3"):
            parse_itinerary(itinerary_json(2), expected_days=3)


class TestPromptContext:
    """Tests for the enrichment sections of the prompt."""

    def test_no_enrichment_no_sections(self):
        assert build_context(EnrichmentData()) == ""

    def test_all_sections(self):
        context = build_context(
            EnrichmentData(city=PARIS, trip_purpose=LEISURE, activities=[LOUVRE])
        )

        assert "DESTINATION INFO: Paris, FR (IATA: PAR)" in context
        assert "predicted to be leisure (87% confidence)" in context
        assert "- Louvre tour: Skip-the-line entry (Rating: 4.7/5, Price: 65.0 EUR)" in context

    def test_prompt_defaults_for_empty_preferences(self, cache):
        trip = make_preference(
            interests=[],
            transport_preferences=[],
            accommodation_preferences=[],
            trip_type=TripType.BUSINESS,
        )

        prompt = ItineraryGenerator(cache, llm=MagicMock()).build_prompt(trip, EnrichmentData())

        assert "Interests: general sightseeing" in prompt
        assert "Transport preferences: public transport" in prompt
        assert "Accommodation preferences: budget hotels" in prompt
        assert "Trip type: business" in prompt
        assert "Number of days: 3" in prompt
        assert "REAL AVAILABLE ACTIVITIES" not in prompt

    def test_prompt_uses_preferences(self, cache):
        prompt = ItineraryGenerator(cache, llm=MagicMock()).build_prompt(
            make_preference(), EnrichmentData(activities=[LOUVRE])
        )

        assert "Interests: museums, food" in prompt
        assert "Travelers: 2" in prompt
        assert "Approximate budget: 1500.0 USD" in prompt
        assert "- Louvre tour" in prompt


class TestMergeEnrichment:
    def test_only_resolved_parts_attached(self):
        document = {"destination": "Paris", "days": []}

        merged = merge_enrichment(document, EnrichmentData(city=PARIS))

        assert merged["cityInfo"]["iataCode"] == "PAR"
        assert "tripPurpose" not in merged
        assert "availableActivities" not in merged
        assert "transferOptions" not in merged
        assert "cityInfo" not in document

    def test_activities_attached(self):
        merged = merge_enrichment({}, EnrichmentData(activities=[LOUVRE], trip_purpose=LEISURE))

        assert merged["availableActivities"][0]["id"] == "a1"
        assert merged["tripPurpose"]["result"] == "LEISURE"


class TestItineraryGenerator:
    """Tests for the cached generation path."""

    @pytest.mark.asyncio
    async def test_generates_and_caches(self, cache, fake_redis):
        trip = make_preference()
        llm = _llm(itinerary_json(3, fenced=True))
        generator = ItineraryGenerator(cache, llm=llm)
        load = AsyncMock(return_value=EnrichmentData(city=PARIS))

        document = await generator.generate(trip, load)

        assert [d["day"] for d in document["days"]] == [1, 2, 3]
        assert document["budgetTips"] == ["Buy a transit pass"]
        assert document["cityInfo"]["name"] == "Paris"
        assert fake_redis.ttls[f"itinerary:{trip.id}"] == 7200
        assert await cache.get(f"itinerary:{trip.id}") == document

    @pytest.mark.asyncio
    async def test_cache_hit_skips_model_and_enrichment(self, cache):
        trip = make_preference()
        llm = _llm(itinerary_json(3))
        generator = ItineraryGenerator(cache, llm=llm)
        load = AsyncMock(return_value=EnrichmentData())

        first = await generator.generate(trip, load)
        second = await generator.generate(trip, load)

        assert first == second
        assert llm.ainvoke.await_count == 1
        assert load.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_output_not_cached(self, cache, fake_redis):
        trip = make_preference()
        generator = ItineraryGenerator(cache, llm=_llm("not json"))

        with pytest.raises(ItineraryGenerationError):
            await generator.generate(trip, AsyncMock(return_value=EnrichmentData()))

        assert f"itinerary:{trip.id}" not in fake_redis.store

    @pytest.mark.asyncio
    async def test_empty_content(self, cache):
        generator = ItineraryGenerator(cache, llm=_llm("   "))

        with pytest.raises(ItineraryGenerationError, match="No content generated"):
            await generator.generate_fresh(make_preference(), EnrichmentData())

    @pytest.mark.asyncio
    async def test_model_receives_rendered_prompt(self, cache):
        llm = _llm(itinerary_json(3))
        generator = ItineraryGenerator(cache, llm=llm)

        await generator.generate_fresh(make_preference(), EnrichmentData(city=PARIS))

        messages = llm.ainvoke.await_args.args[0]
        assert "DESTINATION INFO: Paris" in messages[0].content
