"""API main router - aggregates all domain routers."""

from fastapi import APIRouter

from goplanit.api.endpoints import health, preferences

api_router = APIRouter()

# Include health check endpoint
api_router.include_router(
    health.router,
    tags=["Health"],
)

# Include preference endpoints
api_router.include_router(
    preferences.router,
    prefix="/preferences",
    tags=["Preferences"],
)
