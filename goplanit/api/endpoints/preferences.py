"""Preference API endpoints."""

from fastapi import APIRouter, Query, status

from goplanit.core.deps import PreferenceServiceDep
from goplanit.domains.preference.schemas import (
    MAX_PAGE_SIZE,
    PreferenceCreate,
    PreferenceCreatedResponse,
    PreferenceDetailResponse,
    PreferenceListResponse,
    PreferenceResponse,
    PreferenceUpdate,
    ProcessingStatusResponse,
)

router = APIRouter()


@router.post(
    "",
    response_model=PreferenceCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Create a trip preference",
    description="Store a trip request and start AI itinerary generation in the background.",
)
async def create_preference(
    request: PreferenceCreate,
    service: PreferenceServiceDep,
) -> PreferenceCreatedResponse:
    """
    Create a preference and queue itinerary generation.

    Poll `statusEndpoint` or `GET /preferences/{id}` until the
    itinerary is attached.
    """
    return await service.create_preference(request)


@router.get(
    "/user/{user_id}",
    response_model=PreferenceListResponse,
    summary="List a user's preferences",
)
async def list_user_preferences(
    user_id: str,
    service: PreferenceServiceDep,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
) -> PreferenceListResponse:
    """List preferences for a user, newest first."""
    return await service.list_for_user(user_id, page=page, limit=limit)


@router.get(
    "/{preference_id}",
    response_model=PreferenceDetailResponse,
    summary="Get a preference",
)
async def get_preference(
    preference_id: str,
    service: PreferenceServiceDep,
) -> PreferenceDetailResponse:
    return await service.get_preference(preference_id)


@router.get(
    "/{preference_id}/status",
    response_model=ProcessingStatusResponse,
    response_model_exclude_none=True,
    summary="Get itinerary processing status",
)
async def get_processing_status(
    preference_id: str,
    service: PreferenceServiceDep,
) -> ProcessingStatusResponse:
    """Live pipeline progress, or a status derived from the stored preference."""
    return await service.get_status(preference_id)


@router.put(
    "/{preference_id}",
    response_model=PreferenceResponse,
    summary="Update a preference",
    description="Only interests, budget, transportPreferences and accommodationPreferences can change.",
)
async def update_preference(
    preference_id: str,
    request: PreferenceUpdate,
    service: PreferenceServiceDep,
) -> PreferenceResponse:
    return await service.update_preference(preference_id, request)
