"""Scheduled notification records and their delivery/interaction lifecycle.

States per record: Scheduled -> Delivered -> {Opened, Dismissed, Snoozed}.
Cancelled is an orthogonal flag. Snoozing creates a new Scheduled record.
"""

import logging
from datetime import timedelta
from typing import Optional

from pantry_alerts.notifications.composer import NotificationComposer
from pantry_alerts.notifications.config import RECORDS_KEY, RETENTION_DAYS
from pantry_alerts.notifications.models import ScheduledNotification, to_aware
from pantry_alerts.notifications.platform import NotificationPlatform
from pantry_alerts.notifications.scheduling import Clock
from pantry_alerts.notifications.storage import KeyValueStore

logger = logging.getLogger(__name__)


class LifecycleTracker:
    """Record store for scheduled notifications.

    Every mutation is persisted. Persistence and platform failures are
    logged; the in-memory records stay authoritative for the session.
    Operations on unknown ids are no-ops.
    """

    def __init__(
        self,
        platform: NotificationPlatform,
        store: KeyValueStore,
        clock: Clock,
        composer: NotificationComposer,
        key: str = RECORDS_KEY,
        retention_days: int = RETENTION_DAYS,
    ) -> None:
        self._platform = platform
        self._store = store
        self._clock = clock
        self._composer = composer
        self._key = key
        self._retention = timedelta(days=retention_days)
        self._records: dict[str, ScheduledNotification] = {}

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def records(self) -> list[ScheduledNotification]:
        return list(self._records.values())

    def get(self, notification_id: str) -> Optional[ScheduledNotification]:
        return self._records.get(notification_id)

    def active(self) -> list[ScheduledNotification]:
        """Non-cancelled records, earliest scheduled first."""
        pending = [r for r in self._records.values() if not r.is_cancelled]
        return sorted(pending, key=lambda r: to_aware(r.scheduled_date))

    # ── Persistence ───────────────────────────────────────────────────

    async def load(self) -> int:
        """Load persisted records, skipping malformed entries."""
        try:
            data = await self._store.get(self._key)
        except Exception:
            logger.exception("Failed to load scheduled notifications")
            return 0

        if not isinstance(data, list):
            if data is not None:
                logger.warning("Ignoring malformed scheduled notification data")
            return 0

        loaded = 0
        for item in data:
            try:
                record = ScheduledNotification.from_dict(item)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed notification record: %s", exc)
                continue
            if record.id in self._records:
                logger.warning("Skipping duplicate notification id %s", record.id)
                continue
            self._records[record.id] = record
            loaded += 1

        logger.info("Loaded %d scheduled notifications", loaded)
        return loaded

    async def save(self) -> bool:
        try:
            await self._store.set(self._key, [r.to_dict() for r in self._records.values()])
            return True
        except Exception:
            logger.exception("Failed to save scheduled notifications")
            return False

    # ── Scheduling ────────────────────────────────────────────────────

    async def schedule(self, record: ScheduledNotification) -> Optional[str]:
        """Hand a record to the platform and store it.

        Returns the record id, or None when the platform refused it.
        """
        if record.id in self._records:
            raise ValueError(f"Duplicate notification id: {record.id}")

        payload = self._composer.build_payload(record)
        try:
            await self._platform.schedule_at(payload, record.scheduled_date)
        except Exception:
            logger.exception("Platform failed to schedule notification %s", record.id)
            return None

        self._records[record.id] = record
        await self.save()
        logger.info(
            "Scheduled notification %s: %s",
            record.id,
            record.title,
            extra={"alert_type": record.type.value, "channel_id": payload.channel_id},
        )
        return record.id

    # ── Platform callbacks ────────────────────────────────────────────

    async def mark_delivered(self, notification_id: str) -> Optional[ScheduledNotification]:
        record = self._records.get(notification_id)
        if record is None:
            logger.debug("Delivery callback for unknown notification %s", notification_id)
            return None

        record.is_delivered = True
        record.delivered_at = self._clock.now()
        record.ensure_interaction()
        await self.save()
        return record

    async def mark_opened(self, notification_id: str) -> Optional[ScheduledNotification]:
        record = self._records.get(notification_id)
        if record is None:
            return None
        if not record.is_delivered:
            logger.warning("Ignoring open of undelivered notification %s", notification_id)
            return record

        interaction = record.ensure_interaction()
        interaction.opened = True
        interaction.opened_at = self._clock.now()
        await self.save()
        return record

    async def mark_dismissed(self, notification_id: str) -> Optional[ScheduledNotification]:
        record = self._records.get(notification_id)
        if record is None:
            return None
        if not record.is_delivered:
            logger.warning("Ignoring dismissal of undelivered notification %s", notification_id)
            return record

        interaction = record.ensure_interaction()
        interaction.dismissed = True
        interaction.dismissed_at = self._clock.now()
        await self.save()
        return record

    async def record_action(self, notification_id: str, action: str) -> Optional[ScheduledNotification]:
        record = self._records.get(notification_id)
        if record is None:
            return None

        record.ensure_interaction().action = action
        await self.save()
        return record

    # ── Snooze / cancel ───────────────────────────────────────────────

    async def snooze(
        self,
        notification_id: str,
        snooze_minutes: int,
        cancel_original: bool = True,
    ) -> Optional[ScheduledNotification]:
        """Defer a notification by ``snooze_minutes``.

        Marks the original snoozed, cancels it on the platform and schedules
        a fresh copy at the snooze time. Returns the new record.
        A record that is already snoozed or cancelled is left alone and
        None is returned.
        """
        original = self._records.get(notification_id)
        if original is None:
            return None
        if original.is_cancelled or (original.interaction and original.interaction.snoozed):
            logger.info("Notification %s already snoozed or cancelled", notification_id)
            return None

        now = self._clock.now()
        snooze_until = now + timedelta(minutes=snooze_minutes)

        interaction = original.ensure_interaction()
        interaction.snoozed = True
        interaction.snooze_until = snooze_until
        if cancel_original:
            original.is_cancelled = True

        await self._cancel_on_platform(notification_id)

        clone = original.clone_for_snooze(snooze_until, now)
        if await self.schedule(clone) is None:
            # Keep the snooze flags on the original even if the platform refused.
            await self.save()
            return None

        logger.info("Notification %s snoozed for %d minutes as %s", notification_id, snooze_minutes, clone.id)
        return clone

    async def _cancel_on_platform(self, notification_id: str) -> None:
        try:
            await self._platform.cancel(notification_id)
        except Exception:
            logger.exception("Platform failed to cancel notification %s", notification_id)

    async def cancel(self, notification_id: str) -> bool:
        record = self._records.get(notification_id)
        if record is None:
            return False

        record.is_cancelled = True
        await self._cancel_on_platform(notification_id)
        await self.save()
        logger.info("Cancelled notification %s", notification_id)
        return True

    async def cancel_all(self) -> int:
        for record in self._records.values():
            record.is_cancelled = True

        try:
            await self._platform.cancel_all()
        except Exception:
            logger.exception("Platform failed to cancel all notifications")

        await self.save()
        logger.info("Cancelled all %d notifications", len(self._records))
        return len(self._records)

    # ── Maintenance ───────────────────────────────────────────────────

    async def cleanup(self) -> int:
        """Remove delivered records older than the retention period."""
        cutoff = to_aware(self._clock.now() - self._retention)
        expired = [
            record_id
            for record_id, record in self._records.items()
            if record.is_delivered and to_aware(record.created_at) < cutoff
        ]
        for record_id in expired:
            del self._records[record_id]

        if expired:
            await self.save()
            logger.info("Cleaned up %d old notifications", len(expired))
        return len(expired)
