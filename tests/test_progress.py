from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from accountability.exceptions import Forbidden, NotFound
from accountability.models import PartnerProgress
from accountability.schemas.partnerships import HabitType, PartnershipInviteCreate
from accountability.schemas.progress import ChangeEvent, ProgressUpdate
from accountability.services.partnership_service import accept_invite, remove_partnership, send_invite
from accountability.services.progress_service import (
    check_partner_completion,
    clear_progress,
    get_progress,
    read_progress,
    record_progress,
    subscribe_to_progress,
)

TODAY = date(2026, 10, 18)


async def active_partnership(db, users, inviter="alice", invitee="bob", key="workout"):
    partnership = await send_invite(
        PartnershipInviteCreate(invitee_id=invitee, habit_type=HabitType.CORE, identifier=key),
        db,
        users[inviter],
    )
    return await accept_invite(partnership.id, db, users[invitee])


async def test_recording_twice_keeps_one_row_with_latest_value(db, users):
    partnership = await active_partnership(db, users)

    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=False), db, users["bob"])

    count = (await db.execute(select(func.count()).select_from(PartnerProgress))).scalar_one()
    assert count == 1
    status = await get_progress(partnership.id, "bob", TODAY, db)
    assert status.completed is False
    assert status.streak == 0


async def test_get_progress_defaults_when_absent(db, users):
    partnership = await active_partnership(db, users)

    status = await get_progress(partnership.id, "bob", TODAY, db)

    assert status.completed is False
    assert status.streak == 0


async def test_streak_builds_on_consecutive_days(db, users):
    partnership = await active_partnership(db, users)
    yesterday = TODAY - timedelta(days=1)

    await record_progress(partnership.id, ProgressUpdate(date=yesterday, completed=True), db, users["alice"])
    row = await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["alice"])
    assert row.streak_count == 2

    gap = await record_progress(
        partnership.id, ProgressUpdate(date=TODAY + timedelta(days=2), completed=True), db, users["alice"]
    )
    assert gap.streak_count == 1


async def test_only_participants_record_progress(db, users):
    partnership = await active_partnership(db, users)

    with pytest.raises(Forbidden):
        await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["carol"])
    with pytest.raises(NotFound):
        await record_progress("missing", ProgressUpdate(date=TODAY, completed=True), db, users["bob"])


async def test_subscriber_only_sees_its_partnerships(db, users):
    watched = await active_partnership(db, users)
    other = await active_partnership(db, users, inviter="carol", invitee="bob", key="reading")
    received = []
    subscription = subscribe_to_progress([watched.id], received.append)
    try:
        await record_progress(other.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
        await record_progress(watched.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    finally:
        subscription.unsubscribe()

    assert len(received) == 1
    assert received[0].partnership_id == watched.id
    assert received[0].event == ChangeEvent.INSERT
    assert received[0].completed is True


async def test_async_callbacks_are_awaited(db, users):
    partnership = await active_partnership(db, users)
    received = []

    async def on_change(change):
        received.append(change)

    subscription = subscribe_to_progress([partnership.id], on_change)
    try:
        await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["alice"])
        await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=False), db, users["alice"])
    finally:
        subscription.unsubscribe()

    assert [change.event for change in received] == [ChangeEvent.INSERT, ChangeEvent.UPDATE]
    assert received[-1].completed is False


async def test_clearing_progress_publishes_last_known_values(db, users):
    partnership = await active_partnership(db, users)
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    received = []
    subscription = subscribe_to_progress([partnership.id], received.append)
    try:
        assert await clear_progress(partnership.id, TODAY, db, users["bob"]) is True
        assert await clear_progress(partnership.id, TODAY, db, users["bob"]) is False
    finally:
        subscription.unsubscribe()

    assert len(received) == 1
    assert received[0].event == ChangeEvent.DELETE
    assert received[0].completed is True
    assert received[0].user_id == "bob"
    assert (await get_progress(partnership.id, "bob", TODAY, db)).completed is False


async def test_unsubscribe_stops_callbacks(db, users):
    partnership = await active_partnership(db, users)
    received = []
    subscription = subscribe_to_progress([partnership.id], received.append)
    subscription.unsubscribe()

    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])

    assert received == []
    assert subscription.active is False


async def test_empty_subscription_is_inert(db, users):
    received = []
    subscription = subscribe_to_progress([], received.append)

    partnership = await active_partnership(db, users)
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])

    assert received == []
    subscription.unsubscribe()


async def test_failing_subscriber_does_not_break_recording(db, users):
    partnership = await active_partnership(db, users)

    def explode(change):
        raise RuntimeError("subscriber bug")

    received = []
    broken = subscribe_to_progress([partnership.id], explode)
    healthy = subscribe_to_progress([partnership.id], received.append)
    try:
        row = await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    finally:
        broken.unsubscribe()
        healthy.unsubscribe()

    assert row.completed is True
    assert len(received) == 1


async def test_check_partner_completion_reads_counterpart(db, users):
    partnership = await active_partnership(db, users)
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])

    seen_by_alice = await check_partner_completion(partnership.id, TODAY, db, users["alice"])
    seen_by_bob = await check_partner_completion(partnership.id, TODAY, db, users["bob"])

    assert seen_by_alice.completed is True
    assert seen_by_alice.streak == 1
    assert seen_by_bob.completed is False
    with pytest.raises(Forbidden):
        await check_partner_completion(partnership.id, TODAY, db, users["carol"])


async def test_backfilled_day_carries_streak_forward(db, users):
    partnership = await active_partnership(db, users)
    yesterday = TODAY - timedelta(days=1)
    tomorrow = TODAY + timedelta(days=1)
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    await record_progress(partnership.id, ProgressUpdate(date=tomorrow, completed=True), db, users["bob"])

    received = []
    subscription = subscribe_to_progress([partnership.id], received.append)
    try:
        await record_progress(partnership.id, ProgressUpdate(date=yesterday, completed=True), db, users["bob"])
    finally:
        subscription.unsubscribe()

    assert (await get_progress(partnership.id, "bob", TODAY, db)).streak == 2
    assert (await get_progress(partnership.id, "bob", tomorrow, db)).streak == 3
    assert [(c.event, c.date, c.streak_count) for c in received] == [
        (ChangeEvent.INSERT, yesterday, 1),
        (ChangeEvent.UPDATE, TODAY, 2),
        (ChangeEvent.UPDATE, tomorrow, 3),
    ]


async def test_breaking_a_day_resets_the_days_after_it(db, users):
    partnership = await active_partnership(db, users)
    days = [TODAY + timedelta(days=offset) for offset in range(4)]
    for day in days:
        await record_progress(partnership.id, ProgressUpdate(date=day, completed=True), db, users["bob"])

    await record_progress(partnership.id, ProgressUpdate(date=days[1], completed=False), db, users["bob"])
    assert [(await get_progress(partnership.id, "bob", day, db)).streak for day in days] == [1, 0, 1, 2]

    await record_progress(partnership.id, ProgressUpdate(date=days[1], completed=True), db, users["bob"])
    await clear_progress(partnership.id, days[0], db, users["bob"])
    assert [(await get_progress(partnership.id, "bob", day, db)).streak for day in days[1:]] == [1, 2, 3]


async def test_streak_recompute_stops_at_a_gap(db, users):
    partnership = await active_partnership(db, users)
    later = TODAY + timedelta(days=2)
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    await record_progress(partnership.id, ProgressUpdate(date=later, completed=True), db, users["bob"])

    await record_progress(partnership.id, ProgressUpdate(date=TODAY - timedelta(days=1), completed=True), db, users["bob"])

    assert (await get_progress(partnership.id, "bob", TODAY, db)).streak == 2
    assert (await get_progress(partnership.id, "bob", later, db)).streak == 1


async def test_only_participants_read_progress(db, users):
    partnership = await active_partnership(db, users)
    await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])

    seen_by_alice = await read_progress(partnership.id, "bob", TODAY, db, users["alice"])
    assert seen_by_alice.completed is True

    with pytest.raises(Forbidden):
        await read_progress(partnership.id, "bob", TODAY, db, users["carol"])


async def test_owned_subscription_follows_accepted_and_removed_partnerships(db, users):
    received = []
    subscription = subscribe_to_progress([], received.append, owner_id="bob")
    try:
        partnership = await active_partnership(db, users)
        await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["alice"])

        await remove_partnership(partnership.id, db, users["alice"])
        await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=False), db, users["alice"])
    finally:
        subscription.unsubscribe()

    assert [(c.partnership_id, c.completed) for c in received] == [(partnership.id, True)]


async def test_owned_subscription_ignores_other_users_partnerships(db, users):
    received = []
    subscription = subscribe_to_progress([], received.append, owner_id="carol")
    try:
        partnership = await active_partnership(db, users)
        await record_progress(partnership.id, ProgressUpdate(date=TODAY, completed=True), db, users["bob"])
    finally:
        subscription.unsubscribe()

    assert received == []
