"""
Itinerary pipeline orchestration.

One run takes a stored preference to a persisted, emailed itinerary:

    started(10) -> fetch preference -> generating(30) -> enrichment
    -> generating(50) -> generate -> saving(80) -> persist -> notify
    -> status cleared

Progress only moves forward until the run ends. Any step failure writes
an error status and propagates to the task so it can be retried.
"""

import logging
from typing import Any

from goplanit.core.exceptions import NotificationError, PreferenceNotFoundError
from goplanit.domains.itinerary.services.generator import ItineraryGenerator
from goplanit.domains.itinerary.services.notifier import EmailNotifier
from goplanit.domains.itinerary.services.travel_data import (
    EnrichmentData,
    TravelDataGateway,
)
from goplanit.domains.preference.models import Preference
from goplanit.domains.preference.repository import PreferenceRepository
from goplanit.infra.task_progress import ProcessingState, ProcessingStatusTracker

logger = logging.getLogger(__name__)


class ItineraryPipeline:
    """Runs the itinerary generation steps for one preference."""

    def __init__(
        self,
        repository: PreferenceRepository,
        tracker: ProcessingStatusTracker,
        gateway: TravelDataGateway,
        generator: ItineraryGenerator,
        notifier: EmailNotifier,
    ) -> None:
        self.repository = repository
        self.tracker = tracker
        self.gateway = gateway
        self.generator = generator
        self.notifier = notifier

    async def run(self, preference_id: str) -> dict[str, Any]:
        """
        Execute the pipeline.

        A preference that already carries an itinerary (an earlier attempt
        persisted it) skips straight to notification.

        Raises:
            PreferenceNotFoundError: If the preference does not exist
            Exception: Any other step failure, after the error status
                has been written
        """
        try:
            await self.tracker.update(
                preference_id,
                ProcessingState.STARTED,
                10,
                "Itinerary generation started",
            )

            preference = await self._fetch_preference(preference_id)

            if preference.has_itinerary:
                logger.info(
                    f"Preference {preference_id} already has an itinerary; "
                    f"resuming at notification"
                )
                itinerary = preference.itinerary
            else:
                itinerary = await self._generate(preference)
                await self._persist(preference_id, itinerary)

            await self._notify(preference, itinerary)

        except Exception as e:
            logger.error(f"Itinerary pipeline failed for preference {preference_id}: {e}")
            await self.tracker.update(
                preference_id,
                ProcessingState.ERROR,
                0,
                "Itinerary generation failed",
                error=str(e),
            )
            raise

        await self.tracker.clear(preference_id)
        logger.info(f"Itinerary pipeline completed for preference {preference_id}")
        return {"success": True, "preferenceId": preference_id}

    async def _fetch_preference(self, preference_id: str) -> Preference:
        preference = await self.repository.find_by_id(preference_id)
        if preference is None:
            raise PreferenceNotFoundError(preference_id)
        return preference

    async def _generate(self, preference: Preference) -> dict[str, Any]:
        await self.tracker.update(
            preference.id,
            ProcessingState.GENERATING,
            30,
            "Fetching travel data",
        )

        async def load_enrichment() -> EnrichmentData:
            enrichment = await self.gateway.enrich(preference)
            if enrichment.is_empty:
                logger.warning(
                    f"No travel data resolved for preference {preference.id}; "
                    "generating from preferences alone"
                )
            await self.tracker.update(
                preference.id,
                ProcessingState.GENERATING,
                50,
                "Generating itinerary",
            )
            return enrichment

        return await self.generator.generate(preference, load_enrichment)

    async def _persist(self, preference_id: str, itinerary: dict[str, Any]) -> None:
        await self.tracker.update(
            preference_id,
            ProcessingState.SAVING,
            80,
            "Saving itinerary",
        )
        saved = await self.repository.update_itinerary(preference_id, itinerary)
        if saved is None:
            raise PreferenceNotFoundError(preference_id)

    async def _notify(self, preference: Preference, itinerary: dict[str, Any]) -> None:
        try:
            await self.notifier.send_itinerary_ready(
                preference.email, preference.id, itinerary
            )
        except NotificationError as e:
            logger.warning(f"Notification failed for preference {preference.id}: {e}")
