"""Services for the Preference domain - Business logic layer."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from goplanit.core.exceptions import (
    InvalidPreferenceIdError,
    PreferenceNotFoundHTTPError,
)
from goplanit.domains.preference.models import Preference
from goplanit.domains.preference.repository import PreferenceRepository
from goplanit.domains.preference.schemas import (
    Pagination,
    PreferenceCreate,
    PreferenceCreatedResponse,
    PreferenceDetailResponse,
    PreferenceListResponse,
    PreferenceResponse,
    PreferenceUpdate,
    ProcessingStatusResponse,
)
from goplanit.infra.database import is_valid_document_id
from goplanit.infra.events import emit_preference_created
from goplanit.infra.task_progress import ProcessingState, ProcessingStatusTracker

logger = logging.getLogger(__name__)

ACCEPTED_MESSAGE = (
    "Preference saved; AI-powered itinerary with real travel data will be generated."
)
ESTIMATED_PROCESSING_TIME = "2-3 minutes"

EventEmitter = Callable[[str, str, str | None], str]


def _checked_id(preference_id: str) -> str:
    """Validate a path id; stored ids are lowercase hex."""
    if not is_valid_document_id(preference_id):
        raise InvalidPreferenceIdError()
    return preference_id.lower()


class PreferenceService:
    """Service for preference intake and lookup.

    The HTTP layer talks only to this class; it owns id validation,
    event emission and the store/status-cache reconciliation.
    """

    def __init__(
        self,
        repository: PreferenceRepository,
        tracker: ProcessingStatusTracker,
        emit: EventEmitter = emit_preference_created,
    ) -> None:
        self.repository = repository
        self.tracker = tracker
        self.emit = emit

    # ==================== Intake ====================

    async def create_preference(
        self, data: PreferenceCreate
    ) -> PreferenceCreatedResponse:
        """
        Persist a preference and trigger itinerary generation.

        The record is committed before the event is emitted, so the worker
        can always read it back.
        """
        preference = await self.repository.create_preference(data)
        logger.info(f"Preference {preference.id} created for user {preference.user_id}")

        self.emit(preference.id, preference.user_id, data.priority)

        return PreferenceCreatedResponse(
            id=preference.id,
            message=ACCEPTED_MESSAGE,
            estimated_processing_time=ESTIMATED_PROCESSING_TIME,
            status_endpoint=f"/preferences/{preference.id}/status",
        )

    # ==================== Lookup ====================

    async def _get_existing(self, preference_id: str) -> Preference:
        preference = await self.repository.find_by_id(_checked_id(preference_id))
        if preference is None:
            raise PreferenceNotFoundHTTPError()
        return preference

    async def get_preference(self, preference_id: str) -> PreferenceDetailResponse:
        preference = await self._get_existing(preference_id)
        document = PreferenceResponse.from_model(preference)
        return PreferenceDetailResponse(
            **document.model_dump(),
            processing_status="completed" if preference.has_itinerary else "processing",
        )

    async def get_status(self, preference_id: str) -> ProcessingStatusResponse:
        """
        Current processing status of a preference.

        A live record in the status cache wins; otherwise the status is
        derived from whether the stored preference carries an itinerary.
        """
        preference_id = _checked_id(preference_id)
        cached = await self.tracker.get(preference_id)
        if cached is not None:
            return ProcessingStatusResponse.model_validate(cached.to_dict())

        preference = await self._get_existing(preference_id)
        if preference.has_itinerary:
            return ProcessingStatusResponse(
                preference_id=preference.id,
                status=ProcessingState.COMPLETED.value,
                progress=100,
                message="Itinerary is ready",
                timestamp=preference.completed_at or datetime.now(timezone.utc),
            )
        return ProcessingStatusResponse(
            preference_id=preference.id,
            status=ProcessingState.STARTED.value,
            progress=0,
            message="Queued for itinerary generation",
            timestamp=datetime.now(timezone.utc),
        )

    async def list_for_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
    ) -> PreferenceListResponse:
        items, total = await self.repository.list_by_user(user_id, page, limit)
        return PreferenceListResponse(
            preferences=[PreferenceResponse.from_model(item) for item in items],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        )

    # ==================== Update ====================

    async def update_preference(
        self,
        preference_id: str,
        data: PreferenceUpdate,
    ) -> PreferenceResponse:
        """Apply a restricted-field update."""
        preference = await self.repository.update_fields(_checked_id(preference_id), data)
        if preference is None:
            raise PreferenceNotFoundHTTPError()
        return PreferenceResponse.from_model(preference)
