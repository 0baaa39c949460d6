"""Shared fixtures for the test suite."""

import pytest

from goplanit.infra.redis import CacheService
from goplanit.infra.task_progress import ProcessingStatusTracker
from tests.factories import EventRecorder, FakeRedis, InMemoryPreferenceRepository


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> CacheService:
    return CacheService(fake_redis, default_ttl=60)


@pytest.fixture
def tracker(cache: CacheService) -> ProcessingStatusTracker:
    return ProcessingStatusTracker(cache, ttl=3600)


@pytest.fixture
def repository() -> InMemoryPreferenceRepository:
    return InMemoryPreferenceRepository()


@pytest.fixture
def events() -> EventRecorder:
    return EventRecorder()
