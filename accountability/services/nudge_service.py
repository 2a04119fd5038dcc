"""
Rate-limited reminders between partners.

One nudge per partnership every three hours, whichever partner sends it.
`send_nudge` locks the partnership row before checking the cooldown so
concurrent nudges on PostgreSQL serialize instead of both passing the check.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.exceptions import Forbidden, InvalidTransition, RateLimited
from accountability.models import Nudge, Partnership
from accountability.schemas.notifications import NotificationType
from accountability.schemas.nudges import NudgeAvailability, NudgeCreate
from accountability.schemas.partnerships import PartnershipStatus
from accountability.services.notification_service import dispatch
from accountability.services.partnership_service import get_partnership, resolve_habit_name
from accountability.services.user_service import display_name_of, get_user_by_id
from accountability.utils import time_utils

logger = logging.getLogger(__name__)

NUDGE_COOLDOWN = timedelta(hours=3)


async def get_last_nudge_time(partnership_id: str, db: AsyncSession) -> Optional[datetime]:
    result = await db.execute(
        select(func.max(Nudge.nudged_at)).where(Nudge.partnership_id == partnership_id)
    )
    return time_utils.ensure_aware(result.scalar_one_or_none())


async def get_last_nudge_times(partnership_ids: Iterable[str], db: AsyncSession) -> Dict[str, datetime]:
    """Most recent nudge per partnership; partnerships never nudged are omitted."""
    ids = list(set(partnership_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Nudge.partnership_id, func.max(Nudge.nudged_at))
        .where(Nudge.partnership_id.in_(ids))
        .group_by(Nudge.partnership_id)
    )
    return {partnership_id: time_utils.ensure_aware(nudged_at) for partnership_id, nudged_at in result.all()}


def _cooldown_remaining(last_nudged_at: Optional[datetime]) -> timedelta:
    if last_nudged_at is None:
        return timedelta(0)
    return last_nudged_at + NUDGE_COOLDOWN - time_utils.utc_now()


async def can_nudge(partnership_id: str, db: AsyncSession) -> bool:
    remaining = _cooldown_remaining(await get_last_nudge_time(partnership_id, db))
    return remaining <= timedelta(0)


async def send_nudge(partnership_id: str, nudge: NudgeCreate, db: AsyncSession, current_user: dict) -> Nudge:
    """
    Remind the other partner to complete the shared habit.

    Args:
        partnership_id: Partnership to nudge through
        nudge: NudgeCreate with the nudged user and an optional habit title
        db: AsyncSession for database operations
        current_user: Dictionary containing current user information

    Returns:
        Nudge: The appended nudge row

    Raises:
        NotFound: If the partnership does not exist
        Forbidden: If either user is not the right participant
        InvalidTransition: If the partnership is not accepted
        RateLimited: If the partnership was nudged in the last three hours
    """
    uid = current_user["uid"]
    partnership = await get_partnership(partnership_id, db, for_update=True)
    if not partnership.involves(uid):
        raise Forbidden("You are not part of this partnership")
    if nudge.nudged_user_id != partnership.counterpart_of(uid):
        raise Forbidden("You can only nudge your partner")
    if partnership.status != PartnershipStatus.ACCEPTED:
        raise InvalidTransition("Only active partnerships can be nudged")

    remaining = _cooldown_remaining(await get_last_nudge_time(partnership_id, db))
    if remaining > timedelta(0):
        await db.rollback()
        raise RateLimited(
            f"You can nudge your partner again in {time_utils.format_remaining(remaining)}.",
            retry_after=int(remaining.total_seconds()) + 1,
        )

    habit_title = nudge.habit_title or await resolve_habit_name(db, partnership, viewer_id=nudge.nudged_user_id)
    row = Nudge(
        partnership_id=partnership.id,
        nudger_id=uid,
        nudged_user_id=nudge.nudged_user_id,
        habit_type=partnership.habit_type,
        habit_key=partnership.habit_key,
        custom_habit_id=partnership.custom_habit_id,
        nudged_at=time_utils.utc_now()
    )
    db.add(row)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(row)
    logger.info(f"User {uid} nudged {nudge.nudged_user_id} on partnership {partnership_id}")

    nudger = await get_user_by_id(db, uid)
    await dispatch(
        db,
        nudge.nudged_user_id,
        NotificationType.HABIT_NUDGE,
        {
            "partnership_id": partnership.id,
            "habit_name": habit_title,
            "from_name": display_name_of(nudger, uid),
        },
        from_user_id=uid,
    )
    await db.refresh(row)
    return row


async def get_nudge_availability(partnership_id: str, db: AsyncSession, current_user: dict) -> NudgeAvailability:
    """
    Whether the partnership can be nudged right now, for one of its participants.

    Raises:
        NotFound: If the partnership does not exist
        Forbidden: If the current user is not a participant
    """
    partnership = await get_partnership(partnership_id, db)
    if not partnership.involves(current_user["uid"]):
        raise Forbidden("You are not part of this partnership")
    last_nudged_at = await get_last_nudge_time(partnership_id, db)
    return NudgeAvailability(
        can_nudge=_cooldown_remaining(last_nudged_at) <= timedelta(0),
        last_nudged_at=last_nudged_at
    )


async def last_nudge_times_for_user(
    partnership_ids: Iterable[str], db: AsyncSession, current_user: dict
) -> Dict[str, datetime]:
    """
    `get_last_nudge_times` restricted to the caller's own partnerships.
    Ids of other people's partnerships are dropped, not reported.
    """
    uid = current_user["uid"]
    ids = list(set(partnership_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Partnership.id).where(
            Partnership.id.in_(ids),
            or_(Partnership.inviter_id == uid, Partnership.invitee_id == uid)
        )
    )
    return await get_last_nudge_times(result.scalars().all(), db)
