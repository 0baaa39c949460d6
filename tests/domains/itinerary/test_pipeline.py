"""
Tests for the itinerary pipeline.

Storage, cache and status tracking are in-memory; Amadeus and the chat
model are mocked. The generator itself is the real one.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from goplanit.core.exceptions import (
    ItineraryGenerationError,
    NotificationError,
    PreferenceNotFoundError,
)
from goplanit.domains.itinerary.services import (
    EmailNotifier,
    ItineraryGenerator,
    ItineraryPipeline,
    TravelDataGateway,
)
from goplanit.domains.itinerary.services.travel_data import EnrichmentData
from goplanit.domains.itinerary.tools.amadeus import City
from goplanit.infra.task_progress import ProcessingState, ProcessingStatusTracker
from tests.factories import ai_message, itinerary_json, make_preference

PARIS = City.model_validate({"name": "Paris", "iataCode": "PAR"})


class RecordingTracker(ProcessingStatusTracker):
    """Status tracker that remembers every write."""

    def __init__(self, cache):
        super().__init__(cache, ttl=3600)
        self.history: list[tuple[ProcessingState, int]] = []

    async def update(self, preference_id, status, progress, message, error=None):
        self.history.append((status, progress))
        return await super().update(preference_id, status, progress, message, error)


@pytest.fixture
def recording_tracker(cache) -> RecordingTracker:
    return RecordingTracker(cache)


@pytest.fixture
def gateway() -> MagicMock:
    gateway = MagicMock(spec=TravelDataGateway)
    gateway.enrich = AsyncMock(return_value=EnrichmentData(city=PARIS))
    return gateway


@pytest.fixture
def llm() -> MagicMock:
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=ai_message(itinerary_json(3)))
    return llm


@pytest.fixture
def notifier() -> MagicMock:
    notifier = MagicMock(spec=EmailNotifier)
    notifier.send_itinerary_ready = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def pipeline(repository, recording_tracker, gateway, cache, llm, notifier):
    return ItineraryPipeline(
        repository=repository,
        tracker=recording_tracker,
        gateway=gateway,
        generator=ItineraryGenerator(cache, llm=llm),
        notifier=notifier,
    )


@pytest.fixture
def preference(repository):
    preference = make_preference()
    repository.rows[preference.id] = preference
    return preference


class TestPipelineRun:
    """Tests for a complete run."""

    @pytest.mark.asyncio
    async def test_happy_path(
        self, pipeline, preference, repository, recording_tracker, notifier
    ):
        result = await pipeline.run(preference.id)

        assert result == {"success": True, "preferenceId": preference.id}

        stored = repository.rows[preference.id]
        assert [d["day"] for d in stored.itinerary["days"]] == [1, 2, 3]
        assert stored.itinerary["cityInfo"]["name"] == "Paris"
        assert stored.completed_at is not None

        notifier.send_itinerary_ready.assert_awaited_once_with(
            "a@b.com", preference.id, stored.itinerary
        )

        assert recording_tracker.history == [
            (ProcessingState.STARTED, 10),
            (ProcessingState.GENERATING, 30),
            (ProcessingState.GENERATING, 50),
            (ProcessingState.SAVING, 80),
        ]
        assert await recording_tracker.get(preference.id) is None

    @pytest.mark.asyncio
    async def test_missing_preference(self, pipeline, recording_tracker, gateway):
        preference_id = "f" * 24

        with pytest.raises(PreferenceNotFoundError):
            await pipeline.run(preference_id)

        status = await recording_tracker.get(preference_id)
        assert status.status == ProcessingState.ERROR
        assert status.progress == 0
        assert preference_id in status.error
        gateway.enrich.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_failure_records_error(
        self, pipeline, preference, repository, recording_tracker, llm, notifier
    ):
        llm.ainvoke.return_value = ai_message("I cannot plan this trip.")

        with pytest.raises(ItineraryGenerationError):
            await pipeline.run(preference.id)

        status = await recording_tracker.get(preference.id)
        assert status.status == ProcessingState.ERROR
        assert status.error == "Failed to parse itinerary JSON from AI response"
        assert repository.rows[preference.id].itinerary is None
        notifier.send_itinerary_ready.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_run(
        self, pipeline, preference, repository, recording_tracker, notifier
    ):
        notifier.send_itinerary_ready.side_effect = NotificationError("smtp down")

        result = await pipeline.run(preference.id)

        assert result["success"] is True
        assert repository.rows[preference.id].itinerary is not None
        assert await recording_tracker.get(preference.id) is None

    @pytest.mark.asyncio
    async def test_resumes_at_notification(
        self, pipeline, preference, gateway, llm, notifier, recording_tracker
    ):
        saved = {"destination": "Paris", "days": [{"day": 1, "activities": []}]}
        preference.itinerary = saved

        await pipeline.run(preference.id)

        gateway.enrich.assert_not_awaited()
        llm.ainvoke.assert_not_awaited()
        notifier.send_itinerary_ready.assert_awaited_once_with(
            "a@b.com", preference.id, saved
        )
        assert recording_tracker.history == [(ProcessingState.STARTED, 10)]

    @pytest.mark.asyncio
    async def test_retry_reuses_cached_itinerary(
        self, pipeline, preference, repository, gateway, llm, recording_tracker
    ):
        """A run that failed after generation reuses the cached document."""
        save = repository.update_itinerary
        repository.update_itinerary = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await pipeline.run(preference.id)

        repository.update_itinerary = save
        recording_tracker.history.clear()

        await pipeline.run(preference.id)

        assert llm.ainvoke.await_count == 1
        assert gateway.enrich.await_count == 1
        assert repository.rows[preference.id].itinerary is not None
        # Enrichment is skipped on a cache hit, so 50 is never written
        assert recording_tracker.history == [
            (ProcessingState.STARTED, 10),
            (ProcessingState.GENERATING, 30),
            (ProcessingState.SAVING, 80),
        ]

    @pytest.mark.asyncio
    async def test_enrichment_with_nothing_resolved(
        self, pipeline, preference, repository, gateway, caplog
    ):
        gateway.enrich.return_value = EnrichmentData()

        with caplog.at_level("WARNING"):
            await pipeline.run(preference.id)

        itinerary = repository.rows[preference.id].itinerary
        assert "cityInfo" not in itinerary
        assert len(itinerary["days"]) == 3
        assert f"No travel data resolved for preference {preference.id}" in caplog.text
