"""
Request-to-itinerary flow.

A preference is created over HTTP, the pipeline runs for the emitted
event, and the API then reports the stored itinerary as completed.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from goplanit.core.deps import get_preference_service
from goplanit.domains.itinerary.services import (
    EmailNotifier,
    EnrichmentData,
    ItineraryGenerator,
    ItineraryPipeline,
    TravelDataGateway,
)
from goplanit.domains.preference.service import PreferenceService
from goplanit.main import create_application
from tests.factories import ai_message, itinerary_json


def _day(offset: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=offset)).date().isoformat()


@pytest.fixture
def client(repository, tracker, events):
    app = create_application()
    service = PreferenceService(repository, tracker, emit=events)
    app.dependency_overrides[get_preference_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def pipeline(repository, tracker, cache):
    gateway = MagicMock(spec=TravelDataGateway)
    gateway.enrich = AsyncMock(return_value=EnrichmentData())
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=ai_message(itinerary_json(3, destination="Rome")))
    notifier = MagicMock(spec=EmailNotifier)
    notifier.send_itinerary_ready = AsyncMock(return_value=True)
    return ItineraryPipeline(
        repository=repository,
        tracker=tracker,
        gateway=gateway,
        generator=ItineraryGenerator(cache, llm=llm),
        notifier=notifier,
    )


class TestItineraryFlow:
    def test_created_preference_gets_itinerary(self, client, events, pipeline):
        response = client.post(
            "/preferences",
            json={
                "userId": "u1",
                "email": "a@b.com",
                "travelDates": {"start": _day(1), "end": _day(4)},
                "originLocationCode": "NYC",
                "destinationLocationCode": "ROM",
                "interests": ["history"],
            },
        )
        assert response.status_code == 202
        preference_id = response.json()["id"]

        queued = client.get(f"/preferences/{preference_id}/status").json()
        assert queued["status"] == "started"

        [(event_id, user_id, _)] = events.events
        assert (event_id, user_id) == (preference_id, "u1")
        asyncio.run(pipeline.run(event_id))

        status = client.get(f"/preferences/{preference_id}/status").json()
        assert status["status"] == "completed"
        assert status["progress"] == 100

        preference = client.get(f"/preferences/{preference_id}").json()
        assert preference["processingStatus"] == "completed"
        assert preference["itinerary"]["destination"] == "Rome"
        assert [d["day"] for d in preference["itinerary"]["days"]] == [1, 2, 3]
        assert preference["completedAt"] is not None
