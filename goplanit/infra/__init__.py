"""Infrastructure module - Database, Cache, Celery, and event dispatch."""

from goplanit.infra.celery_app import celery_app
from goplanit.infra.database import Base, close_db, get_db, init_db
from goplanit.infra.redis import (
    CacheService,
    close_redis,
    get_redis,
    init_redis,
)
from goplanit.infra.task_progress import (
    ProcessingState,
    ProcessingStatus,
    ProcessingStatusTracker,
)

__all__ = [
    # Celery
    "celery_app",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    "CacheService",
    # Processing status
    "ProcessingState",
    "ProcessingStatus",
    "ProcessingStatusTracker",
]
