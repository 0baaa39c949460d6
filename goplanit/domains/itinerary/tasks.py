"""
GoPlanIt Backend - Itinerary Pipeline Tasks
Celery task that runs the itinerary pipeline for a newly created preference
"""

import asyncio
import logging
from typing import Any

from celery.exceptions import SoftTimeLimitExceeded

from goplanit.core.config import settings
from goplanit.core.exceptions import ItineraryGenerationError, PreferenceNotFoundError
from goplanit.domains.itinerary.services import (
    EmailNotifier,
    ItineraryGenerator,
    ItineraryPipeline,
    TravelDataGateway,
)
from goplanit.domains.itinerary.tools.amadeus import AmadeusClient
from goplanit.domains.itinerary.tools.base import AuthenticationError, RateLimitError
from goplanit.domains.preference.repository import PreferenceRepository
from goplanit.infra.celery_app import PIPELINE_TASK_NAME, celery_app
from goplanit.infra.database import DatabaseManager
from goplanit.infra.redis import CacheService, create_redis_client
from goplanit.infra.task_progress import ProcessingStatusTracker

logger = logging.getLogger(__name__)

MAX_RETRY_COUNTDOWN = 600
NON_RETRYABLE_ERRORS = frozenset({"not_found", "authentication"})


@celery_app.task(
    bind=True,
    name=PIPELINE_TASK_NAME,
    max_retries=settings.PIPELINE_MAX_RETRIES,
    soft_time_limit=540,
    time_limit=600,
)
def run_itinerary_pipeline(
    self,
    preference_id: str,
    user_id: str | None = None,
    priority: str | None = None,
) -> dict[str, Any]:
    """
    Generate, persist and announce the itinerary for a preference.

    Triggered by the ``user.preference/created`` event. Retriable failures
    are re-queued with backoff up to ``max_retries``; a missing preference
    ends the run immediately.

    Args:
        preference_id: Stored preference to process
        user_id: Owner of the preference, for logging
        priority: Event priority the run was queued with
    """
    task_id = self.request.id
    logger.info(
        f"Task {task_id}: itinerary pipeline for preference {preference_id} "
        f"(user={user_id}, priority={priority or 'normal'}, "
        f"attempt {self.request.retries + 1}/{self.max_retries + 1})"
    )

    try:
        # Everything async shares one event loop per run
        return asyncio.run(_run_pipeline(preference_id))

    except PreferenceNotFoundError as e:
        logger.error(f"Task {task_id}: {e}; not retrying")
        raise

    except SoftTimeLimitExceeded:
        logger.error(f"Task {task_id} timed out")
        raise

    except Exception as e:
        error_type = _classify_task_error(e)
        logger.error(f"Task {task_id} failed ({error_type}): {e}")

        if error_type not in NON_RETRYABLE_ERRORS and self.request.retries < self.max_retries:
            countdown = _get_retry_delay(error_type, self.request.retries)
            logger.info(f"Task {task_id}: retrying in {countdown}s")
            raise self.retry(exc=e, countdown=countdown)

        raise


async def _run_pipeline(preference_id: str) -> dict[str, Any]:
    """Build per-run resources, run the pipeline, and dispose of them."""
    database = DatabaseManager()
    redis = create_redis_client()
    cache = CacheService(redis)

    try:
        async with database.session() as session, AmadeusClient(cache=cache) as amadeus:
            pipeline = ItineraryPipeline(
                repository=PreferenceRepository(session),
                tracker=ProcessingStatusTracker(cache),
                gateway=TravelDataGateway(amadeus, cache),
                generator=ItineraryGenerator(cache),
                notifier=EmailNotifier(),
            )
            return await pipeline.run(preference_id)
    finally:
        await redis.aclose()
        await database.close()


def _classify_task_error(exception: Exception) -> str:
    """Classify an exception into an error type that selects the retry policy."""
    exc_name = type(exception).__name__.lower()
    exc_msg = str(exception).lower()

    # Check specific exception types
    if isinstance(exception, PreferenceNotFoundError):
        return "not_found"
    if isinstance(exception, RateLimitError):
        return "rate_limit"
    if isinstance(exception, AuthenticationError):
        return "authentication"
    if isinstance(exception, ItineraryGenerationError):
        return "generation_error"
    if "timeout" in exc_name or "timeout" in exc_msg:
        return "timeout"
    if "ratelimit" in exc_name or ("rate" in exc_msg and "limit" in exc_msg):
        return "rate_limit"
    if "network" in exc_msg or "connection" in exc_msg or "connection" in exc_name:
        return "network_error"
    if "service" in exc_msg and ("unavailable" in exc_msg or "error" in exc_msg):
        return "service_unavailable"
    if "invalid" in exc_msg or "validation" in exc_msg:
        return "validation_error"

    return "unknown"


def _get_retry_delay(error_type: str, retries: int = 0) -> int:
    """Retry countdown for an error type, doubled per previous attempt."""
    delays = {
        "rate_limit": 60,  # Wait 1 minute for rate limits
        "timeout": 30,
        "network_error": 15,
        "service_unavailable": 45,
        "generation_error": 10,
    }
    base = delays.get(error_type, 30)
    return min(base * (2**retries), MAX_RETRY_COUNTDOWN)
