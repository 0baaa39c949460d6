"""
GoPlanIt Backend - Processing Status Tracking
Ephemeral per-preference progress records for polling clients
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from goplanit.core.config import settings
from goplanit.infra.redis import CacheService


class ProcessingState(str, Enum):
    """Pipeline status tags exposed to polling clients."""

    STARTED = "started"
    GENERATING = "generating"
    SAVING = "saving"
    ERROR = "error"
    COMPLETED = "completed"


@dataclass
class ProcessingStatus:
    """Progress information for one preference."""

    preference_id: str
    status: ProcessingState
    progress: int  # 0-100
    message: str
    error: str | None = None
    started_at: datetime | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.progress <= 100:
            raise ValueError(f"progress must be within 0..100, got {self.progress}")
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape served by the status endpoint."""
        data: dict[str, Any] = {
            "preferenceId": self.preference_id,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
        if self.started_at:
            data["startedAt"] = self.started_at.isoformat()
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessingStatus":
        """Create from dictionary."""
        started_at = data.get("startedAt")
        timestamp = data.get("timestamp")
        return cls(
            preference_id=data["preferenceId"],
            status=ProcessingState(data["status"]),
            progress=data["progress"],
            message=data.get("message", ""),
            error=data.get("error"),
            started_at=datetime.fromisoformat(started_at) if started_at else None,
            timestamp=datetime.fromisoformat(timestamp) if timestamp else None,
        )


class ProcessingStatusTracker:
    """
    Reads and writes processing status records through the cache.

    Writes never raise: a status record is advisory and the preference
    store stays the source of truth for completion.
    """

    KEY_PREFIX = "processing"

    def __init__(self, cache: CacheService, ttl: int | None = None) -> None:
        self.cache = cache
        self.ttl = ttl or settings.STATUS_TTL_SECONDS

    def _get_key(self, preference_id: str) -> str:
        return f"{self.KEY_PREFIX}:{preference_id}"

    async def update(
        self,
        preference_id: str,
        status: ProcessingState,
        progress: int,
        message: str,
        error: str | None = None,
    ) -> ProcessingStatus:
        """
        Overwrite the status record for a preference.

        Args:
            preference_id: Preference being processed
            status: Current pipeline state
            progress: Progress percentage (0-100)
            message: Human-readable status message
            error: Error detail when status is ERROR

        Returns:
            The record that was written
        """
        now = datetime.now(timezone.utc)
        existing = await self.get(preference_id)
        if status == ProcessingState.STARTED or existing is None:
            started_at = now
        else:
            started_at = existing.started_at or now

        record = ProcessingStatus(
            preference_id=preference_id,
            status=status,
            progress=progress,
            message=message,
            error=error,
            started_at=started_at,
            timestamp=now,
        )
        await self.cache.set(self._get_key(preference_id), record.to_dict(), self.ttl)
        return record

    async def get(self, preference_id: str) -> ProcessingStatus | None:
        """Get the current status record, if any."""
        data = await self.cache.get(self._get_key(preference_id))
        if not data:
            return None
        try:
            return ProcessingStatus.from_dict(data)
        except (KeyError, ValueError):
            return None

    async def clear(self, preference_id: str) -> bool:
        """Delete the status record."""
        return await self.cache.delete(self._get_key(preference_id))
