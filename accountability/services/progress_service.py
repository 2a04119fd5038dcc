import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.core.realtime.progress_feed import ProgressCallback, Subscription, progress_feed
from accountability.exceptions import Forbidden
from accountability.models import PartnerProgress
from accountability.schemas.progress import ChangeEvent, ProgressChange, ProgressStatus, ProgressUpdate
from accountability.services.partnership_service import get_partnership

logger = logging.getLogger(__name__)


async def _get_row(db: AsyncSession, partnership_id: str, user_id: str, progress_date: date) -> Optional[PartnerProgress]:
    result = await db.execute(
        select(PartnerProgress).where(
            PartnerProgress.partnership_id == partnership_id,
            PartnerProgress.user_id == user_id,
            PartnerProgress.date == progress_date
        )
    )
    return result.scalar_one_or_none()


async def _streak_for(db: AsyncSession, partnership_id: str, user_id: str, progress_date: date, completed: bool) -> int:
    if not completed:
        return 0
    previous = await _get_row(db, partnership_id, user_id, progress_date - timedelta(days=1))
    if previous and previous.completed:
        return previous.streak_count + 1
    return 1


async def _restreak_following(
    db: AsyncSession, partnership_id: str, user_id: str, from_date: date, streak: int
) -> List[PartnerProgress]:
    """
    Carry a changed streak forward through the consecutive days after
    `from_date`. Stops at the first gap or the first row already correct.

    Returns the rows that changed; the caller commits.
    """
    result = await db.execute(
        select(PartnerProgress).where(
            PartnerProgress.partnership_id == partnership_id,
            PartnerProgress.user_id == user_id,
            PartnerProgress.date > from_date
        ).order_by(PartnerProgress.date)
    )
    changed = []
    expected_date = from_date
    for row in result.scalars().all():
        expected_date += timedelta(days=1)
        if row.date != expected_date:
            break
        streak = streak + 1 if row.completed else 0
        if row.streak_count == streak:
            break
        row.streak_count = streak
        changed.append(row)
    return changed


def _to_change(event: ChangeEvent, row: PartnerProgress) -> ProgressChange:
    return ProgressChange(
        event=event,
        partnership_id=row.partnership_id,
        user_id=row.user_id,
        date=row.date,
        completed=row.completed,
        streak_count=row.streak_count,
    )


async def _get_participant_partnership(partnership_id: str, db: AsyncSession, current_user: dict):
    partnership = await get_partnership(partnership_id, db)
    if not partnership.involves(current_user["uid"]):
        raise Forbidden("You are not part of this partnership")
    return partnership


async def record_progress(
    partnership_id: str, update: ProgressUpdate, db: AsyncSession, current_user: dict
) -> PartnerProgress:
    """
    Upsert the current user's completion for one day of a partnership.

    Last write wins. A backfilled or corrected day also updates the streak
    of the consecutive days recorded after it. Every changed row is
    published to live progress subscribers after the commit.

    Raises:
        NotFound: If the partnership does not exist
        Forbidden: If the current user is not a participant
    """
    uid = current_user["uid"]
    await _get_participant_partnership(partnership_id, db, current_user)

    streak = await _streak_for(db, partnership_id, uid, update.date, update.completed)
    row = await _get_row(db, partnership_id, uid, update.date)
    event = ChangeEvent.UPDATE if row else ChangeEvent.INSERT
    if row:
        row.completed = update.completed
        row.streak_count = streak
    else:
        row = PartnerProgress(
            partnership_id=partnership_id,
            user_id=uid,
            date=update.date,
            completed=update.completed,
            streak_count=streak
        )
        db.add(row)
    following = await _restreak_following(db, partnership_id, uid, update.date, streak)

    try:
        await db.commit()
    except IntegrityError:
        # Lost an insert race for the same key; apply as an update instead
        await db.rollback()
        row = await _get_row(db, partnership_id, uid, update.date)
        row.completed = update.completed
        row.streak_count = streak
        event = ChangeEvent.UPDATE
        following = await _restreak_following(db, partnership_id, uid, update.date, streak)
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
    except SQLAlchemyError:
        logger.exception(f"Failed to record progress for {uid} on partnership {partnership_id}")
        await db.rollback()
        raise
    await db.refresh(row)

    logger.info(f"Progress {event.value} {partnership_id}/{uid}/{update.date}: completed={row.completed}")
    if following:
        logger.info(f"Carried streak forward through {len(following)} later days for {uid} on {partnership_id}")
    await progress_feed.publish(_to_change(event, row))
    for later in following:
        await progress_feed.publish(_to_change(ChangeEvent.UPDATE, later))
    return row


async def clear_progress(partnership_id: str, progress_date: date, db: AsyncSession, current_user: dict) -> bool:
    """
    Delete the current user's row for a day. Subscribers receive a DELETE
    carrying the last-known values, then an UPDATE for every later day
    whose streak was broken by the removal.

    Returns:
        bool: False if there was no row to delete
    """
    uid = current_user["uid"]
    await _get_participant_partnership(partnership_id, db, current_user)

    row = await _get_row(db, partnership_id, uid, progress_date)
    if row is None:
        return False

    change = _to_change(ChangeEvent.DELETE, row)
    following = await _restreak_following(db, partnership_id, uid, progress_date, 0)
    await db.delete(row)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await progress_feed.publish(change)
    for later in following:
        await progress_feed.publish(_to_change(ChangeEvent.UPDATE, later))
    return True


async def get_progress(partnership_id: str, user_id: str, progress_date: date, db: AsyncSession) -> ProgressStatus:
    row = await _get_row(db, partnership_id, user_id, progress_date)
    if row is None:
        return ProgressStatus(completed=False, streak=0)
    return ProgressStatus(completed=row.completed, streak=row.streak_count)


async def read_progress(
    partnership_id: str, user_id: str, progress_date: date, db: AsyncSession, current_user: dict
) -> ProgressStatus:
    """
    `get_progress` on behalf of a caller. Either participant may read either
    participant's row; anyone else is refused.

    Raises:
        NotFound: If the partnership does not exist
        Forbidden: If the current user is not a participant
    """
    await _get_participant_partnership(partnership_id, db, current_user)
    return await get_progress(partnership_id, user_id, progress_date, db)


async def check_partner_completion(
    partnership_id: str, progress_date: date, db: AsyncSession, current_user: dict
) -> ProgressStatus:
    """The other participant's completion for a day, as seen by the current user."""
    partnership = await _get_participant_partnership(partnership_id, db, current_user)
    return await get_progress(partnership_id, partnership.counterpart_of(current_user["uid"]), progress_date, db)


def subscribe_to_progress(
    partnership_ids: Iterable[str], callback: ProgressCallback, owner_id: Optional[str] = None
) -> Subscription:
    """
    Receive every progress mutation for the given partnerships.

    With `owner_id`, partnerships that user accepts or leaves later are
    added to or dropped from the subscription as it happens. The returned
    handle must be released with `unsubscribe()`.
    """
    return progress_feed.subscribe(partnership_ids, callback, owner_id=owner_id)
