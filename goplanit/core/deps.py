"""FastAPI dependencies wiring request handlers to the preference service."""

from typing import Annotated

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from goplanit.domains.preference.repository import PreferenceRepository
from goplanit.domains.preference.service import PreferenceService
from goplanit.infra.database import get_db
from goplanit.infra.redis import CacheService, get_redis
from goplanit.infra.task_progress import ProcessingStatusTracker


def get_preference_repository(
    session: Annotated[AsyncSession, Depends(get_db)],
) -> PreferenceRepository:
    return PreferenceRepository(session)


def get_status_tracker(
    redis: Annotated[Redis, Depends(get_redis)],
) -> ProcessingStatusTracker:
    return ProcessingStatusTracker(CacheService(redis))


def get_preference_service(
    repository: Annotated[PreferenceRepository, Depends(get_preference_repository)],
    tracker: Annotated[ProcessingStatusTracker, Depends(get_status_tracker)],
) -> PreferenceService:
    """Get the preference service for a request."""
    return PreferenceService(repository, tracker)


PreferenceServiceDep = Annotated[PreferenceService, Depends(get_preference_service)]
