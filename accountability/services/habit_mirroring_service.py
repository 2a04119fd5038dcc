"""
Provision an equivalent habit for the invitee when they accept an invite.

Mirroring is at-least-once and deduplicated by exact title match, not by
identity: running it twice for one partnership reuses the invitee's habit
as long as the title has not changed. Two concurrent runs can still both
miss the title lookup and create two habits.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.exceptions import UpstreamUnavailable
from accountability.models import Partnership
from accountability.schemas.habits import HabitDefinition
from accountability.schemas.partnerships import HabitType
from accountability.services import habit_catalog_service as catalog

logger = logging.getLogger(__name__)


async def mirror_habit_for_invitee(db: AsyncSession, partnership: Partnership) -> Optional[str]:
    """
    Make sure the invitee can track the partnership's habit.

    Args:
        db: AsyncSession for database operations
        partnership: An accepted partnership

    Returns:
        str: The invitee-side custom habit id, or None for core habits and
        for custom habits that could not be mirrored

    Raises:
        UpstreamUnavailable: If the habit catalog fails mid-way
    """
    try:
        if partnership.habit_type == HabitType.CORE:
            await _mirror_core_habit(db, partnership)
            return None
        return await _mirror_custom_habit(db, partnership)
    except SQLAlchemyError as e:
        raise UpstreamUnavailable(f"Habit catalog failed while mirroring partnership {partnership.id}") from e


async def _mirror_core_habit(db: AsyncSession, partnership: Partnership):
    habit_key = partnership.habit_key
    enabled = await catalog.list_enabled_core_habits(db, partnership.invitee_id)
    if habit_key in enabled:
        logger.info(f"Invitee {partnership.invitee_id} already tracks core habit '{habit_key}'")
        return

    await catalog.enable_core_habit(db, partnership.invitee_id, habit_key)
    copied = await catalog.copy_schedule(db, partnership.inviter_id, partnership.invitee_id, habit_key)
    logger.info(f"Mirrored core habit '{habit_key}' to {partnership.invitee_id} (schedule copied: {copied})")


async def resolve_source_definition(db: AsyncSession, partnership: Partnership) -> Optional[HabitDefinition]:
    """
    The inviter's current definition, or the invite-time snapshot if the
    inviter has since deleted or archived the habit.
    """
    if partnership.inviter_habit_id:
        definition = await catalog.get_custom_habit_definition(db, partnership.inviter_habit_id)
        if definition is not None:
            return definition

    if partnership.habit_snapshot:
        logger.info(f"Inviter habit for partnership {partnership.id} is gone; using snapshot")
        return HabitDefinition.model_validate(partnership.habit_snapshot)
    return None


async def _mirror_custom_habit(db: AsyncSession, partnership: Partnership) -> Optional[str]:
    source = await resolve_source_definition(db, partnership)
    if source is None:
        logger.warning(f"No habit definition or snapshot for partnership {partnership.id}; skipping mirror")
        return None

    invitee_id = partnership.invitee_id
    if await catalog.user_has_any_custom_habit(db, invitee_id):
        existing_id = await catalog.find_custom_habit_by_title(db, invitee_id, source.title)
        if existing_id:
            logger.info(f"Reusing invitee habit {existing_id} titled '{source.title}'")
            return existing_id

    return await catalog.create_custom_habit(db, invitee_id, source)
