import logging
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.core.realtime.progress_feed import progress_feed
from accountability.exceptions import Forbidden, NotFound
from accountability.models import CustomHabit, Partnership
from accountability.schemas.notifications import NotificationType
from accountability.schemas.partnerships import PartnershipStatus
from accountability.services.notification_service import dispatch
from accountability.services.partnership_service import get_partnerships_for_habit
from accountability.services.user_service import display_name_of, get_user_by_id

logger = logging.getLogger(__name__)

async def list_habit_partnerships(habit_id: str, db: AsyncSession, current_user: dict) -> List[Partnership]:
    """Active partnerships that would end if the habit were deleted."""
    return await get_partnerships_for_habit(db, current_user["uid"], habit_id)

async def delete_custom_habit(habit_id: str, db: AsyncSession, current_user: dict) -> dict:
    """
    Delete one of the current user's custom habits.

    Every accepted partnership tracked through the habit is cancelled first
    and the other partner is told; the notification is best-effort.

    Raises:
        NotFound: If the habit does not exist
        Forbidden: If the habit belongs to another user
    """
    uid = current_user["uid"]
    habit = await db.get(CustomHabit, habit_id)
    if habit is None:
        raise NotFound("Habit not found")
    if habit.user_id != uid:
        raise Forbidden("You can only delete your own habits")
    habit_title = habit.title

    partnerships = await get_partnerships_for_habit(db, uid, habit_id)
    if partnerships:
        logger.info(f"Cancelling {len(partnerships)} partnerships for habit {habit_id}")

    cancelled = []
    for partnership in partnerships:
        partnership.status = PartnershipStatus.CANCELLED
        cancelled.append((partnership.id, partnership.counterpart_of(uid)))
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    for partnership_id, _ in cancelled:
        progress_feed.revoke(partnership_id)

    user = await get_user_by_id(db, uid)
    for partnership_id, partner_id in cancelled:
        await dispatch(
            db,
            partner_id,
            NotificationType.PARTNERSHIP_CANCELLED,
            {
                "partnership_id": partnership_id,
                "habit_name": habit_title,
                "from_name": display_name_of(user, uid),
            },
            from_user_id=uid,
        )

    habit = await db.get(CustomHabit, habit_id)
    await db.delete(habit)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    logger.info(f"Deleted custom habit {habit_id} for user {uid}")
    return {"message": "Habit deleted", "cancelled_partnerships": [pid for pid, _ in cancelled]}
