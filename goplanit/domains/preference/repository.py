"""Repository for the Preference domain.

Provides data access for trip preferences and their generated itineraries.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from goplanit.domains.preference.models import Preference
from goplanit.domains.preference.schemas import PreferenceCreate, PreferenceUpdate
from goplanit.domains.shared.repository import GenericRepository

# Columns a client may change after intake
UPDATABLE_FIELDS = frozenset(
    {
        "interests",
        "budget",
        "transport_preferences",
        "accommodation_preferences",
    }
)


class PreferenceRepository(
    GenericRepository[Preference, PreferenceCreate, PreferenceUpdate]
):
    """Repository for Preference CRUD operations.

    Every mutating method commits before returning so a worker reading the
    same id afterwards sees the write.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Preference, session)

    async def create_preference(self, data: PreferenceCreate) -> Preference:
        """Persist a validated intake request and commit it."""
        preference = await self.create(data.to_model_fields())
        await self.commit()
        return preference

    async def find_by_id(self, preference_id: str) -> Preference | None:
        return await self.get_by_id(preference_id)

    async def update_itinerary(
        self,
        preference_id: str,
        itinerary: dict[str, Any],
    ) -> Preference | None:
        """Attach a generated itinerary and stamp ``completed_at``.

        Returns:
            The updated preference, or None if it no longer exists
        """
        preference = await self.update(
            preference_id,
            {
                "itinerary": itinerary,
                "completed_at": datetime.now(timezone.utc),
            },
        )
        if preference is None:
            return None
        await self.commit()
        return preference

    async def update_fields(
        self,
        preference_id: str,
        fields: PreferenceUpdate | dict[str, Any],
    ) -> Preference | None:
        """Apply a restricted update; keys outside the allowed set are dropped."""
        if isinstance(fields, PreferenceUpdate):
            fields = fields.model_dump(exclude_unset=True)
        allowed = {
            key: value
            for key, value in fields.items()
            if key in UPDATABLE_FIELDS and value is not None
        }

        if not allowed:
            return await self.find_by_id(preference_id)

        preference = await self.update(preference_id, allowed)
        if preference is None:
            return None
        await self.commit()
        return preference

    async def list_by_user(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[Sequence[Preference], int]:
        """Get one page of a user's preferences, newest first.

        Returns:
            Tuple of (preferences, total count)
        """
        condition = Preference.user_id == user_id
        items = await self.find_many(
            condition,
            skip=(page - 1) * page_size,
            limit=page_size,
            order_by=Preference.created_at.desc(),
        )
        total = await self.count(condition)
        return items, total
