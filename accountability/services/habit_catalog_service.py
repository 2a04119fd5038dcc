import logging
from typing import Dict, Iterable, List, Optional, Set
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.models import CustomHabit, UserCoreHabit, CoreHabitSchedule
from accountability.schemas.habits import HabitDefinition

logger = logging.getLogger(__name__)

# Fixed, process-wide catalog of core habits
CORE_HABITS = {
    "workout": "Workout",
    "meditation": "Meditation",
    "reading": "Reading",
    "journaling": "Journaling",
    "hydration": "Drink Water",
    "sleep": "Sleep 8 Hours",
    "walk": "Daily Walk",
    "no_sugar": "No Sugar",
    "cold_shower": "Cold Shower",
    "screen_time": "Limit Screen Time",
}

GENERIC_HABIT_LABEL = "Custom Habit"


def resolve_core_habit_name(habit_key: str) -> str:
    """Unknown keys echo back unchanged."""
    return CORE_HABITS.get(habit_key, habit_key)


async def get_custom_habit(db: AsyncSession, habit_id: str) -> Optional[CustomHabit]:
    """Fetch a live (non-archived) custom habit row, or None."""
    result = await db.execute(
        select(CustomHabit).where(
            CustomHabit.id == habit_id,
            CustomHabit.is_archived == False
        )
    )
    return result.scalar_one_or_none()


async def get_custom_habit_titles(db: AsyncSession, habit_ids: Iterable[str]) -> Dict[str, str]:
    """Titles of the live habits among `habit_ids`, in one query. Missing or archived ids are omitted."""
    ids = set(habit_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(CustomHabit.id, CustomHabit.title).where(
            CustomHabit.id.in_(ids),
            CustomHabit.is_archived == False
        )
    )
    return {habit_id: title for habit_id, title in result.all()}


async def get_custom_habit_definition(db: AsyncSession, habit_id: str) -> Optional[HabitDefinition]:
    habit = await get_custom_habit(db, habit_id)
    if habit is None:
        return None
    return HabitDefinition.model_validate(habit)


async def user_has_any_custom_habit(db: AsyncSession, user_id: str) -> bool:
    result = await db.execute(
        select(CustomHabit.id).where(
            CustomHabit.user_id == user_id,
            CustomHabit.is_archived == False
        ).limit(1)
    )
    return result.first() is not None


async def find_custom_habit_by_title(db: AsyncSession, user_id: str, title: str) -> Optional[str]:
    """Exact, case-sensitive title match among the user's live habits."""
    result = await db.execute(
        select(CustomHabit.id).where(
            CustomHabit.user_id == user_id,
            CustomHabit.title == title,
            CustomHabit.is_archived == False
        ).order_by(CustomHabit.created_at).limit(1)
    )
    return result.scalars().first()


async def create_custom_habit(db: AsyncSession, user_id: str, definition: HabitDefinition) -> str:
    habit = CustomHabit(user_id=user_id, **definition.model_dump())
    db.add(habit)
    await db.commit()
    await db.refresh(habit)
    logger.info(f"Created custom habit {habit.id} '{habit.title}' for user {user_id}")
    return habit.id


async def list_enabled_core_habits(db: AsyncSession, user_id: str) -> Set[str]:
    result = await db.execute(
        select(UserCoreHabit.habit_key).where(UserCoreHabit.user_id == user_id)
    )
    return set(result.scalars().all())


async def enable_core_habit(db: AsyncSession, user_id: str, habit_key: str):
    db.add(UserCoreHabit(user_id=user_id, habit_key=habit_key))
    await db.commit()
    logger.info(f"Enabled core habit '{habit_key}' for user {user_id}")


async def get_core_habit_schedule(db: AsyncSession, user_id: str, habit_key: str) -> Optional[List[int]]:
    result = await db.execute(
        select(CoreHabitSchedule).where(
            CoreHabitSchedule.user_id == user_id,
            CoreHabitSchedule.habit_key == habit_key
        )
    )
    schedule = result.scalar_one_or_none()
    return list(schedule.days) if schedule else None


async def copy_schedule(db: AsyncSession, from_user_id: str, to_user_id: str, habit_key: str) -> bool:
    """
    Copy one user's weekday schedule for a core habit onto another user.

    Returns False when the source user has no schedule for that key.
    """
    days = await get_core_habit_schedule(db, from_user_id, habit_key)
    if days is None:
        logger.info(f"No schedule for '{habit_key}' on user {from_user_id}; nothing to copy")
        return False

    result = await db.execute(
        select(CoreHabitSchedule).where(
            CoreHabitSchedule.user_id == to_user_id,
            CoreHabitSchedule.habit_key == habit_key
        )
    )
    target = result.scalar_one_or_none()
    if target:
        target.days = days
    else:
        db.add(CoreHabitSchedule(user_id=to_user_id, habit_key=habit_key, days=days))
    await db.commit()
    return True
