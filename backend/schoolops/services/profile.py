from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from schoolops.models.tenant import Profile

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession


async def get_profile(session: AsyncSession, user_id: uuid.UUID) -> Profile | None:
    result = await session.execute(select(Profile).where(col(Profile.id) == user_id))
    return result.scalar_one_or_none()


async def get_display_name(session: AsyncSession, user_id: uuid.UUID) -> str | None:
    """Full name from the user's profile, None for users without one."""
    profile = await get_profile(session, user_id)
    return profile.full_name if profile is not None else None
