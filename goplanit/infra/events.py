"""
GoPlanIt Backend - Domain Event Dispatch
Routes domain events to the Celery tasks that consume them
"""

import logging
from typing import Any

from goplanit.infra.celery_app import (
    HIGH_PRIORITY_QUEUE,
    ITINERARY_QUEUE,
    PIPELINE_TASK_NAME,
    celery_app,
)

logger = logging.getLogger(__name__)

PREFERENCE_CREATED = "user.preference/created"


def queue_for_priority(priority: str | None) -> str:
    """Pick the worker queue for an event priority."""
    if priority == "high":
        return HIGH_PRIORITY_QUEUE
    return ITINERARY_QUEUE


def emit_preference_created(
    preference_id: str,
    user_id: str,
    priority: str | None = None,
) -> str:
    """
    Emit ``user.preference/created`` and schedule the itinerary pipeline.

    Must only be called after the preference is committed, the worker
    reads it back by id.

    Returns:
        The Celery task id of the scheduled run
    """
    payload: dict[str, Any] = {
        "preference_id": preference_id,
        "user_id": user_id,
        "priority": priority,
    }
    result = celery_app.send_task(
        PIPELINE_TASK_NAME,
        kwargs=payload,
        queue=queue_for_priority(priority),
    )
    logger.info(
        f"Emitted {PREFERENCE_CREATED} for preference {preference_id} "
        f"(task {result.id})"
    )
    return result.id
