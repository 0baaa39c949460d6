"""
GoPlanIt Backend - Celery Application Configuration
Celery setup with Redis broker for the itinerary pipeline workers
"""

from celery import Celery
from celery.signals import setup_logging
from kombu import Exchange, Queue

from goplanit.core.config import settings
from goplanit.core.logging import configure_logging

PIPELINE_TASK_NAME = "goplanit.domains.itinerary.tasks.run_itinerary_pipeline"

ITINERARY_QUEUE = "itinerary"
HIGH_PRIORITY_QUEUE = "high_priority"


def create_celery_app() -> Celery:
    """Create and configure Celery application."""

    celery = Celery(
        "goplanit",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "goplanit.domains.itinerary.tasks",
        ],
    )

    # Task serialization
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
    )

    # Task execution settings
    celery.conf.update(
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_time_limit=900,  # 15 minutes hard limit
        task_soft_time_limit=840,
        task_track_started=True,
    )

    # Worker settings; concurrency bounds pipelines running at once. The
    # ceiling holds system-wide only with one worker on the itinerary queues.
    celery.conf.update(
        worker_prefetch_multiplier=1,
        worker_concurrency=settings.PIPELINE_CONCURRENCY,
        worker_max_tasks_per_child=1000,
        worker_send_task_events=True,
    )

    # Result settings
    celery.conf.update(
        result_expires=86400,  # 24 hours
        result_extended=True,
        result_backend_transport_options={
            "retry_policy": {
                "timeout": 5.0,
            }
        },
    )

    # Define task queues
    celery.conf.task_queues = (
        Queue("default", Exchange("default"), routing_key="default"),
        Queue(ITINERARY_QUEUE, Exchange(ITINERARY_QUEUE), routing_key="itinerary.#"),
        Queue(HIGH_PRIORITY_QUEUE, Exchange(HIGH_PRIORITY_QUEUE), routing_key="high.#"),
    )

    celery.conf.task_default_queue = "default"
    celery.conf.task_default_exchange = "default"
    celery.conf.task_default_routing_key = "default"

    # Task routing
    celery.conf.task_routes = {
        "goplanit.domains.itinerary.tasks.*": {"queue": ITINERARY_QUEUE},
    }

    # Retry is driven explicitly by the task, so no autoretry here
    celery.conf.task_annotations = {
        "*": {
            "rate_limit": "100/m",
            "max_retries": settings.PIPELINE_MAX_RETRIES,
            "default_retry_delay": 60,
        },
        PIPELINE_TASK_NAME: {
            "rate_limit": "30/m",
            "max_retries": settings.PIPELINE_MAX_RETRIES,
            "time_limit": 600,  # 10 minutes
            "soft_time_limit": 540,
        },
    }

    return celery


# Create the Celery application instance
celery_app = create_celery_app()


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    """Use the application log format in workers instead of Celery's."""
    configure_logging()
