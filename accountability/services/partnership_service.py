import logging
from typing import Dict, List, Optional
from sqlalchemy import select, and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.core.realtime.progress_feed import progress_feed
from accountability.exceptions import Forbidden, InvalidRequest, InvalidTransition, NotFound, UpstreamUnavailable
from accountability.models import Partnership
from accountability.schemas.habits import HabitDefinition
from accountability.schemas.notifications import NotificationType
from accountability.schemas.partnerships import (
    HabitType,
    PartnershipDetailResponse,
    PartnershipInviteCreate,
    PartnershipResponse,
    PartnershipStatus,
    TERMINAL_STATUSES,
)
from accountability.services import habit_catalog_service as catalog
from accountability.services.habit_mirroring_service import mirror_habit_for_invitee
from accountability.services.notification_service import dispatch
from accountability.services.user_service import display_name_of, get_profiles, get_user_by_id
from accountability.utils import time_utils

# Configure logging for this module
logger = logging.getLogger(__name__)


async def get_partnership(partnership_id: str, db: AsyncSession, for_update: bool = False) -> Partnership:
    """
    Fetch a partnership by id.

    Raises:
        NotFound: If no partnership has that id
    """
    stmt = select(Partnership).where(Partnership.id == partnership_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    partnership = result.scalar_one_or_none()
    if partnership is None:
        raise NotFound("Partnership not found")
    return partnership


def _custom_habit_ref(partnership: Partnership, viewer_id: Optional[str]) -> Optional[str]:
    if viewer_id == partnership.invitee_id and partnership.invitee_habit_id:
        return partnership.invitee_habit_id
    return partnership.inviter_habit_id


async def resolve_habit_name(db: AsyncSession, partnership: Partnership, viewer_id: Optional[str] = None) -> str:
    """
    Display name of the partnership's habit.

    Custom habits are looked up through the viewer's own reference (the
    invitee's mirrored habit once there is one). A habit deleted since the
    invite resolves to a generic label.
    """
    if partnership.habit_type == HabitType.CORE:
        return catalog.resolve_core_habit_name(partnership.habit_key)

    habit_id = _custom_habit_ref(partnership, viewer_id)
    definition = await catalog.get_custom_habit_definition(db, habit_id) if habit_id else None
    return definition.title if definition else catalog.GENERIC_HABIT_LABEL


async def _find_existing(db: AsyncSession, inviter_id: str, invite: PartnershipInviteCreate) -> Optional[Partnership]:
    result = await db.execute(
        select(Partnership).where(
            Partnership.inviter_id == inviter_id,
            Partnership.invitee_id == invite.invitee_id,
            Partnership.habit_type == invite.habit_type,
            Partnership.habit_identifier == invite.identifier
        )
    )
    return result.scalar_one_or_none()


async def _notify_invitee(db: AsyncSession, partnership: Partnership):
    inviter = await get_user_by_id(db, partnership.inviter_id)
    await dispatch(
        db,
        partnership.invitee_id,
        NotificationType.HABIT_INVITE,
        {
            "partnership_id": partnership.id,
            "habit_type": partnership.habit_type.value,
            "habit_key": partnership.habit_key,
            "custom_habit_id": partnership.custom_habit_id,
            "habit_name": await resolve_habit_name(db, partnership),
            "mode": partnership.mode.value,
            "from_name": display_name_of(inviter, partnership.inviter_id),
        },
        from_user_id=partnership.inviter_id,
    )


async def send_invite(invite: PartnershipInviteCreate, db: AsyncSession, current_user: dict) -> Partnership:
    """
    Invite another user to track a habit together.

    Re-inviting reuses the row for the same (inviter, invitee, habit) tuple:
    a declined or cancelled row is revived to pending with a fresh snapshot
    and mode, a pending or accepted row is returned unchanged.

    Args:
        invite: PartnershipInviteCreate with the invitee, habit and mode
        db: AsyncSession for database operations
        current_user: Dictionary containing current user information

    Returns:
        Partnership: The new, revived or already-active partnership

    Raises:
        InvalidRequest: On a self-invite or empty identifier
        NotFound: If the custom habit does not exist
        Forbidden: If the custom habit belongs to someone else
    """
    inviter_id = current_user["uid"]
    if inviter_id == invite.invitee_id:
        raise InvalidRequest("You can't invite yourself to a habit.")
    if not invite.identifier:
        raise InvalidRequest("A habit identifier is required")

    snapshot = None
    if invite.habit_type == HabitType.CUSTOM:
        habit = await catalog.get_custom_habit(db, invite.identifier)
        if habit is None:
            raise NotFound("Habit not found")
        if habit.user_id != inviter_id:
            raise Forbidden("You can only invite partners to your own habits")
        snapshot = HabitDefinition.model_validate(habit).model_dump(mode="json")

    existing = await _find_existing(db, inviter_id, invite)
    if existing:
        if existing.status not in TERMINAL_STATUSES:
            logger.info(f"Partnership {existing.id} already {existing.status.value}; invite is a no-op")
            return existing

        existing.status = PartnershipStatus.PENDING
        existing.mode = invite.mode
        existing.accepted_at = None
        existing.created_at = time_utils.utc_now()
        if snapshot is not None:
            existing.habit_snapshot = snapshot
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        await db.refresh(existing)
        logger.info(f"Partnership {existing.id} re-invited by {inviter_id}")

        await _notify_invitee(db, existing)
        await db.refresh(existing)
        return existing

    partnership = Partnership(
        inviter_id=inviter_id,
        invitee_id=invite.invitee_id,
        habit_type=invite.habit_type,
        habit_identifier=invite.identifier,
        habit_key=invite.identifier if invite.habit_type == HabitType.CORE else None,
        custom_habit_id=invite.identifier if invite.habit_type == HabitType.CUSTOM else None,
        inviter_habit_id=invite.identifier if invite.habit_type == HabitType.CUSTOM else None,
        habit_snapshot=snapshot,
        mode=invite.mode,
        status=PartnershipStatus.PENDING,
        created_at=time_utils.utc_now()
    )
    db.add(partnership)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent invite for the same tuple won the insert
        await db.rollback()
        existing = await _find_existing(db, inviter_id, invite)
        if existing is None:
            raise
        logger.info(f"Concurrent invite detected; returning partnership {existing.id}")
        return existing
    await db.refresh(partnership)
    logger.info(f"Partnership {partnership.id} created: {inviter_id} invited {invite.invitee_id}")

    await _notify_invitee(db, partnership)
    await db.refresh(partnership)
    return partnership


async def accept_invite(partnership_id: str, db: AsyncSession, current_user: dict) -> Partnership:
    """
    Accept a pending invite as the invitee.

    The status change is committed first. Mirroring the habit, repointing
    the invitee's habit reference and notifying the inviter follow in order;
    a failure in any of them is logged and never undoes the acceptance.

    Raises:
        NotFound: If the partnership does not exist
        Forbidden: If the current user is not the invitee
        InvalidTransition: If the invite was declined or cancelled
    """
    partnership = await get_partnership(partnership_id, db)
    uid = current_user["uid"]
    if partnership.invitee_id != uid:
        raise Forbidden("Only the invitee can accept this invite")

    newly_accepted = partnership.status == PartnershipStatus.PENDING
    if partnership.status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Invite is {partnership.status.value} and can no longer be accepted")

    if newly_accepted:
        partnership.status = PartnershipStatus.ACCEPTED
        partnership.accepted_at = time_utils.utc_now()
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        await db.refresh(partnership)
        logger.info(f"Partnership {partnership.id} accepted by {uid}")

    # Open progress sockets of both partners start streaming this partnership
    progress_feed.grant(partnership.inviter_id, partnership.id)
    progress_feed.grant(partnership.invitee_id, partnership.id)

    try:
        mirrored_habit_id = await mirror_habit_for_invitee(db, partnership)
    except UpstreamUnavailable:
        logger.exception(f"Habit mirroring failed for partnership {partnership.id}")
        await db.rollback()
        await db.refresh(partnership)
        mirrored_habit_id = None

    if mirrored_habit_id and mirrored_habit_id != partnership.invitee_habit_id:
        partnership.invitee_habit_id = mirrored_habit_id
        try:
            await db.commit()
            logger.info(f"Partnership {partnership.id} invitee habit set to {mirrored_habit_id}")
        except SQLAlchemyError:
            logger.exception(f"Failed to repoint invitee habit for partnership {partnership.id}")
            await db.rollback()
        await db.refresh(partnership)

    if newly_accepted:
        invitee = await get_user_by_id(db, uid)
        await dispatch(
            db,
            partnership.inviter_id,
            NotificationType.HABIT_INVITE_ACCEPTED,
            {
                "partnership_id": partnership.id,
                "habit_name": await resolve_habit_name(db, partnership),
                "from_name": display_name_of(invitee, uid),
            },
            from_user_id=uid,
        )
        await db.refresh(partnership)

    return partnership


async def _set_status(db: AsyncSession, partnership: Partnership, status: PartnershipStatus) -> Partnership:
    partnership.status = status
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(partnership)
    return partnership


async def decline_invite(partnership_id: str, db: AsyncSession, current_user: dict) -> Partnership:
    """
    Decline a pending invite as the invitee. Re-declining a terminal row is a no-op.
    """
    partnership = await get_partnership(partnership_id, db)
    if partnership.invitee_id != current_user["uid"]:
        raise Forbidden("Only the invitee can decline this invite")
    if partnership.status in TERMINAL_STATUSES:
        return partnership
    if partnership.status == PartnershipStatus.ACCEPTED:
        raise InvalidTransition("An accepted partnership can't be declined")

    await _set_status(db, partnership, PartnershipStatus.DECLINED)
    logger.info(f"Partnership {partnership.id} declined by {current_user['uid']}")
    return partnership


async def cancel_invite(partnership_id: str, db: AsyncSession, current_user: dict) -> Partnership:
    """
    Withdraw a pending invite as the inviter. Re-cancelling a terminal row is a no-op.
    """
    partnership = await get_partnership(partnership_id, db)
    if partnership.inviter_id != current_user["uid"]:
        raise Forbidden("Only the inviter can cancel this invite")
    if partnership.status in TERMINAL_STATUSES:
        return partnership
    if partnership.status == PartnershipStatus.ACCEPTED:
        raise InvalidTransition("Use remove to end an accepted partnership")

    await _set_status(db, partnership, PartnershipStatus.CANCELLED)
    logger.info(f"Partnership {partnership.id} cancelled by {current_user['uid']}")
    return partnership


async def remove_partnership(partnership_id: str, db: AsyncSession, current_user: dict) -> Partnership:
    """
    End an accepted partnership; either participant may do so.
    Removing an already-terminated partnership is a no-op.
    """
    partnership = await get_partnership(partnership_id, db)
    if not partnership.involves(current_user["uid"]):
        raise Forbidden("You are not part of this partnership")
    if partnership.status in TERMINAL_STATUSES:
        return partnership
    if partnership.status == PartnershipStatus.PENDING:
        raise InvalidTransition("A pending invite is cancelled or declined, not removed")

    await _set_status(db, partnership, PartnershipStatus.CANCELLED)
    progress_feed.revoke(partnership.id)
    logger.info(f"Partnership {partnership.id} removed by {current_user['uid']}")
    return partnership


def _habit_name_from(partnership: Partnership, viewer_id: str, titles: Dict[str, str]) -> str:
    if partnership.habit_type == HabitType.CORE:
        return catalog.resolve_core_habit_name(partnership.habit_key)
    return titles.get(_custom_habit_ref(partnership, viewer_id), catalog.GENERIC_HABIT_LABEL)


async def _with_partner_details(
    db: AsyncSession, partnerships: List[Partnership], user_id: str
) -> List[PartnershipDetailResponse]:
    # One profile query and one habit title query for the whole page
    profiles = await get_profiles(db, [p.counterpart_of(user_id) for p in partnerships])
    custom_refs = [_custom_habit_ref(p, user_id) for p in partnerships if p.habit_type == HabitType.CUSTOM]
    titles = await catalog.get_custom_habit_titles(db, [ref for ref in custom_refs if ref])
    details = []
    for partnership in partnerships:
        base = PartnershipResponse.model_validate(partnership).model_dump()
        details.append(PartnershipDetailResponse(
            **base,
            partner=profiles[partnership.counterpart_of(user_id)],
            habit_name=_habit_name_from(partnership, user_id, titles),
        ))
    return details


async def list_pending_invites(db: AsyncSession, current_user: dict) -> List[PartnershipDetailResponse]:
    """Invites waiting on the current user's answer, newest first, with inviter profiles."""
    uid = current_user["uid"]
    result = await db.execute(
        select(Partnership).where(
            Partnership.invitee_id == uid,
            Partnership.status == PartnershipStatus.PENDING
        ).order_by(Partnership.created_at.desc())
    )
    return await _with_partner_details(db, result.scalars().all(), uid)


async def list_active_partnerships(db: AsyncSession, current_user: dict) -> List[PartnershipDetailResponse]:
    """Accepted partnerships on either side, each with the other participant's profile."""
    uid = current_user["uid"]
    result = await db.execute(
        select(Partnership).where(
            or_(Partnership.inviter_id == uid, Partnership.invitee_id == uid),
            Partnership.status == PartnershipStatus.ACCEPTED
        ).order_by(Partnership.accepted_at)
    )
    return await _with_partner_details(db, result.scalars().all(), uid)


async def list_active_partnership_ids(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(
        select(Partnership.id).where(
            or_(Partnership.inviter_id == user_id, Partnership.invitee_id == user_id),
            Partnership.status == PartnershipStatus.ACCEPTED
        )
    )
    return list(result.scalars().all())


async def get_partnerships_for_habit(db: AsyncSession, user_id: str, habit_id: str) -> List[Partnership]:
    """Accepted partnerships the user tracks through the given custom habit."""
    result = await db.execute(
        select(Partnership).where(
            Partnership.status == PartnershipStatus.ACCEPTED,
            or_(
                and_(Partnership.inviter_id == user_id, Partnership.inviter_habit_id == habit_id),
                and_(Partnership.invitee_id == user_id, Partnership.invitee_habit_id == habit_id)
            )
        )
    )
    return list(result.scalars().all())
