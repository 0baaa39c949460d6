"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint for container orchestration."""
    return {
        "success": True,
        "message": "Server is running successfully",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
