from sqlalchemy import func, select

from accountability.models import CoreHabitSchedule, CustomHabit, Partnership
from accountability.schemas.partnerships import HabitType, PartnershipInviteCreate, PartnershipStatus
from accountability.services import habit_catalog_service as catalog
from accountability.services.habit_mirroring_service import mirror_habit_for_invitee
from accountability.services.partnership_service import accept_invite, send_invite

from .conftest import make_habit


async def habits_titled(db, user_id, title):
    result = await db.execute(
        select(func.count()).select_from(CustomHabit).where(
            CustomHabit.user_id == user_id, CustomHabit.title == title
        )
    )
    return result.scalar_one()


async def invite_custom(db, users, habit):
    return await send_invite(
        PartnershipInviteCreate(invitee_id="bob", habit_type=HabitType.CUSTOM, identifier=habit.id),
        db,
        users["alice"],
    )


async def test_core_habit_enabled_with_inviter_schedule(db, users):
    db.add(CoreHabitSchedule(user_id="alice", habit_key="workout", days=[1, 3, 5]))
    await db.commit()
    partnership = await send_invite(
        PartnershipInviteCreate(invitee_id="bob", habit_type=HabitType.CORE, identifier="workout"),
        db,
        users["alice"],
    )

    accepted = await accept_invite(partnership.id, db, users["bob"])

    assert "workout" in await catalog.list_enabled_core_habits(db, "bob")
    assert await catalog.get_core_habit_schedule(db, "bob", "workout") == [1, 3, 5]
    assert accepted.invitee_habit_id is None


async def test_core_habit_without_source_schedule(db, users):
    partnership = await send_invite(
        PartnershipInviteCreate(invitee_id="bob", habit_type=HabitType.CORE, identifier="hydration"),
        db,
        users["alice"],
    )

    accepted = await accept_invite(partnership.id, db, users["bob"])

    assert accepted.status == PartnershipStatus.ACCEPTED
    assert await catalog.list_enabled_core_habits(db, "bob") == {"hydration"}
    assert await catalog.get_core_habit_schedule(db, "bob", "hydration") is None


async def test_core_habit_already_enabled_is_left_alone(db, users):
    await catalog.enable_core_habit(db, "bob", "reading")
    partnership = await send_invite(
        PartnershipInviteCreate(invitee_id="bob", habit_type=HabitType.CORE, identifier="reading"),
        db,
        users["alice"],
    )

    await accept_invite(partnership.id, db, users["bob"])

    assert await catalog.list_enabled_core_habits(db, "bob") == {"reading"}


async def test_custom_habit_copied_to_invitee(db, users):
    habit = await make_habit(db, "alice")
    partnership = await invite_custom(db, users, habit)

    accepted = await accept_invite(partnership.id, db, users["bob"])

    mirrored = await db.get(CustomHabit, accepted.invitee_habit_id)
    assert mirrored.user_id == "bob"
    assert mirrored.id != habit.id
    for field in ("title", "description", "emoji", "color", "accent_color", "schedule_days",
                  "target_quantity", "target_unit", "reminder_time", "timezone"):
        assert getattr(mirrored, field) == getattr(habit, field)


async def test_accepting_twice_does_not_duplicate_habit(db, users):
    habit = await make_habit(db, "alice")
    partnership = await invite_custom(db, users, habit)

    first = await accept_invite(partnership.id, db, users["bob"])
    mirrored_id = first.invitee_habit_id
    second = await accept_invite(partnership.id, db, users["bob"])

    assert second.invitee_habit_id == mirrored_id
    assert await habits_titled(db, "bob", "Cold Plunge") == 1


async def test_existing_habit_with_same_title_is_reused(db, users):
    own = await make_habit(db, "bob", description="Bob's own version")
    habit = await make_habit(db, "alice")
    partnership = await invite_custom(db, users, habit)

    accepted = await accept_invite(partnership.id, db, users["bob"])

    assert accepted.invitee_habit_id == own.id
    assert await habits_titled(db, "bob", "Cold Plunge") == 1


async def test_snapshot_used_when_inviter_deleted_habit(db, users):
    habit = await make_habit(db, "alice", target_quantity=5.0)
    partnership = await invite_custom(db, users, habit)
    await db.delete(habit)
    await db.commit()

    accepted = await accept_invite(partnership.id, db, users["bob"])

    assert accepted.status == PartnershipStatus.ACCEPTED
    mirrored = await db.get(CustomHabit, accepted.invitee_habit_id)
    assert mirrored.title == "Cold Plunge"
    assert mirrored.target_quantity == 5.0
    assert mirrored.schedule_days == [0, 2, 4]


async def test_snapshot_used_when_inviter_archived_habit(db, users):
    habit = await make_habit(db, "alice")
    partnership = await invite_custom(db, users, habit)
    habit.is_archived = True
    await db.commit()

    accepted = await accept_invite(partnership.id, db, users["bob"])

    assert accepted.invitee_habit_id is not None
    assert await habits_titled(db, "bob", "Cold Plunge") == 1


async def test_nothing_to_mirror_without_habit_or_snapshot(db, users):
    partnership = Partnership(
        inviter_id="alice",
        invitee_id="bob",
        habit_type=HabitType.CUSTOM,
        habit_identifier="gone",
        custom_habit_id="gone",
        inviter_habit_id="gone",
        habit_snapshot=None,
        status=PartnershipStatus.ACCEPTED,
    )
    db.add(partnership)
    await db.commit()

    assert await mirror_habit_for_invitee(db, partnership) is None
    assert not await catalog.user_has_any_custom_habit(db, "bob")
