import logging
from typing import Dict, Iterable, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.models import User
from accountability.schemas.partnerships import PartnerProfile

logger = logging.getLogger(__name__)

async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()

async def get_profiles(db: AsyncSession, user_ids: Iterable[str]) -> Dict[str, PartnerProfile]:
    """
    Load public profiles for many users in a single query.

    Users without a profile row get a placeholder so callers never have to
    handle a missing partner.
    """
    ids = set(user_ids)
    if not ids:
        return {}

    result = await db.execute(select(User).where(User.id.in_(ids)))
    profiles = {
        user.id: PartnerProfile.model_validate(user)
        for user in result.scalars().all()
    }

    for user_id in ids - profiles.keys():
        profiles[user_id] = PartnerProfile(id=user_id, username="Unknown User")
    return profiles

def display_name_of(user: Optional[User], fallback: str) -> str:
    if user is None:
        return fallback
    return user.display_name or user.username or fallback
