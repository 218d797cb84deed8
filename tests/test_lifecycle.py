"""Tests for the notification record lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest

from pantry_alerts.notifications import (
    AlertType,
    InMemoryStore,
    LifecycleTracker,
    NotificationComposer,
    NotificationSettings,
    ScheduledNotification,
)

START = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tracker(platform, store, clock):
    settings = NotificationSettings()
    return LifecycleTracker(platform, store, clock, NotificationComposer(lambda: settings))


def _record(scheduled=START, created=START, **kwargs) -> ScheduledNotification:
    return ScheduledNotification(
        alert_id=kwargs.pop("alert_id", "alert-1"),
        type=kwargs.pop("type", AlertType.EXPIRING_SOON),
        title="Milk expires in 2 days",
        message="Expires in 2 days.",
        scheduled_date=scheduled,
        product_id="product-1",
        created_at=created,
        **kwargs,
    )


class TestSchedule:

    @pytest.mark.asyncio
    async def test_schedule_persists(self, tracker, platform, store):
        record = _record()
        assert await tracker.schedule(record) == record.id
        assert platform.scheduled[0][0].id == record.id
        stored = await store.get("scheduled_notifications")
        assert [r["id"] for r in stored] == [record.id]
        assert stored[0]["is_delivered"] is False

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, tracker):
        record = _record()
        await tracker.schedule(record)
        with pytest.raises(ValueError):
            await tracker.schedule(_record(id=record.id))

    @pytest.mark.asyncio
    async def test_platform_failure(self, tracker, platform, store):
        platform.fail_schedule = True
        assert await tracker.schedule(_record()) is None
        assert tracker.records == []
        assert await store.get("scheduled_notifications") is None


class TestTransitions:

    @pytest.mark.asyncio
    async def test_delivered_then_opened(self, tracker, clock):
        record = _record()
        await tracker.schedule(record)
        await clock.advance(minutes=1)
        await tracker.mark_delivered(record.id)
        await clock.advance(minutes=4)
        await tracker.mark_opened(record.id)

        assert record.is_delivered
        assert record.delivered_at == START + timedelta(minutes=1)
        assert record.interaction.opened_at == START + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_delivery_keeps_existing_interaction(self, tracker):
        record = _record()
        await tracker.schedule(record)
        await tracker.record_action(record.id, "share")
        await tracker.mark_delivered(record.id)
        assert record.interaction.action == "share"

    @pytest.mark.asyncio
    async def test_open_and_dismiss_require_delivery(self, tracker):
        record = _record()
        await tracker.schedule(record)
        await tracker.mark_opened(record.id)
        await tracker.mark_dismissed(record.id)
        assert not record.is_opened
        assert not record.is_dismissed

    @pytest.mark.asyncio
    async def test_unknown_ids(self, tracker):
        assert await tracker.mark_delivered("missing") is None
        assert await tracker.mark_opened("missing") is None
        assert await tracker.mark_dismissed("missing") is None
        assert await tracker.record_action("missing", "snooze") is None
        assert await tracker.snooze("missing", 30) is None
        assert await tracker.cancel("missing") is False


class TestSnooze:

    @pytest.mark.asyncio
    async def test_snooze_schedules_clone(self, tracker, platform, clock):
        record = _record()
        await tracker.schedule(record)
        await tracker.mark_delivered(record.id)

        clone = await tracker.snooze(record.id, 30)

        assert record.interaction.snoozed
        assert record.is_cancelled
        assert platform.cancelled == [record.id]
        assert clone.scheduled_date == clock.now() + timedelta(minutes=30)
        assert clone.created_at == clock.now()
        assert not clone.interaction.opened
        assert tracker.get(clone.id) is clone

    @pytest.mark.asyncio
    async def test_snooze_keep_original(self, tracker):
        record = _record()
        await tracker.schedule(record)
        clone = await tracker.snooze(record.id, 30, cancel_original=False)
        assert not record.is_cancelled
        assert [r.id for r in tracker.active()] == [record.id, clone.id]

    @pytest.mark.asyncio
    async def test_snooze_platform_failure(self, tracker, platform):
        record = _record()
        await tracker.schedule(record)
        platform.fail_schedule = True
        assert await tracker.snooze(record.id, 30) is None
        assert record.interaction.snoozed
        assert len(tracker.records) == 1


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_all(self, tracker, platform):
        await tracker.schedule(_record(alert_id="a1"))
        await tracker.schedule(_record(alert_id="a2"))
        assert await tracker.cancel_all() == 2
        assert platform.cancel_all_calls == 1
        assert tracker.active() == []


class TestCleanup:

    @pytest.mark.asyncio
    async def test_removes_old_delivered_only(self, tracker, clock):
        old_delivered = _record(alert_id="a1")
        old_pending = _record(alert_id="a2")
        await tracker.schedule(old_delivered)
        await tracker.schedule(old_pending)
        await tracker.mark_delivered(old_delivered.id)

        clock.set(START + timedelta(days=7, seconds=1))
        assert await tracker.cleanup() == 1
        assert [r.id for r in tracker.records] == [old_pending.id]

    @pytest.mark.asyncio
    async def test_retention_boundary(self, tracker, clock):
        record = _record()
        await tracker.schedule(record)
        await tracker.mark_delivered(record.id)
        clock.set(START + timedelta(days=7))
        assert await tracker.cleanup() == 0

    @pytest.mark.asyncio
    async def test_idempotent(self, tracker, clock):
        for i in range(3):
            record = _record(alert_id=f"a{i}")
            await tracker.schedule(record)
            await tracker.mark_delivered(record.id)
        clock.set(START + timedelta(days=30))
        assert await tracker.cleanup() == 3
        assert await tracker.cleanup() == 0
        assert tracker.records == []

    @pytest.mark.asyncio
    async def test_empty(self, tracker):
        assert await tracker.cleanup() == 0


class TestLoad:

    @pytest.mark.asyncio
    async def test_round_trip(self, tracker, platform, store, clock):
        record = _record()
        await tracker.schedule(record)
        await tracker.mark_delivered(record.id)
        await tracker.mark_opened(record.id)

        settings = NotificationSettings()
        fresh = LifecycleTracker(platform, store, clock, NotificationComposer(lambda: settings))
        assert await fresh.load() == 1
        loaded = fresh.get(record.id)
        assert loaded.is_opened
        assert loaded.scheduled_date == record.scheduled_date
        assert loaded.type == AlertType.EXPIRING_SOON

    @pytest.mark.asyncio
    async def test_skips_malformed_and_duplicates(self, platform, clock):
        good = _record().to_dict()
        store = InMemoryStore({
            "scheduled_notifications": [
                good,
                {"id": "broken"},
                {**good, "type": "not-a-type", "id": "other"},
                good,
            ]
        })
        settings = NotificationSettings()
        tracker = LifecycleTracker(platform, store, clock, NotificationComposer(lambda: settings))
        assert await tracker.load() == 1

    @pytest.mark.asyncio
    async def test_non_list_ignored(self, platform, clock):
        store = InMemoryStore({"scheduled_notifications": {"oops": True}})
        settings = NotificationSettings()
        tracker = LifecycleTracker(platform, store, clock, NotificationComposer(lambda: settings))
        assert await tracker.load() == 0

    @pytest.mark.asyncio
    async def test_naive_timestamps_accepted(self, platform, clock):
        data = _record().to_dict()
        data["scheduled_date"] = "2026-03-04T12:00:00"
        data["created_at"] = "2026-03-04T12:00:00"
        store = InMemoryStore({"scheduled_notifications": [data]})
        settings = NotificationSettings()
        tracker = LifecycleTracker(platform, store, clock, NotificationComposer(lambda: settings))
        assert await tracker.load() == 1
        assert await tracker.cleanup() == 0
        assert len(tracker.active()) == 1
