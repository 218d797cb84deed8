"""Notification engine: the public entry point for expiration alerts.

Flow for one alert:
    suppression -> (batch aggregation) -> composition -> platform -> records

Platform callbacks (delivered, opened, action, dismissed) are routed back
through the engine to update the records.
"""

import copy
import logging
from typing import Optional, Union

from pantry_alerts.logging_config import LoggingConfig, configure_logging
from pantry_alerts.logging_config.context import NotificationContext
from pantry_alerts.notifications.aggregation import BatchAggregator
from pantry_alerts.notifications.composer import NotificationComposer
from pantry_alerts.notifications.config import (
    RECORDS_KEY,
    RETENTION_DAYS,
    SETTINGS_KEY,
    InteractionAction,
    SuppressionDecision,
)
from pantry_alerts.notifications.lifecycle import LifecycleTracker
from pantry_alerts.notifications.models import (
    Alert,
    NotificationStatistics,
    ScheduledNotification,
)
from pantry_alerts.notifications.platform import (
    ConsumptionTracker,
    LoggingNavigator,
    LoggingPlatform,
    Navigator,
    NotificationPlatform,
    default_channel_specs,
)
from pantry_alerts.notifications.preferences import NotificationSettings, SettingsStore
from pantry_alerts.notifications.scheduling import (
    AsyncioScheduler,
    Clock,
    SystemClock,
    TaskScheduler,
)
from pantry_alerts.notifications.statistics import compute_statistics
from pantry_alerts.notifications.storage import InMemoryStore, KeyValueStore, SqlAlchemyStore
from pantry_alerts.notifications.suppression import evaluate_suppression, is_in_quiet_hours
from pantry_alerts.settings import RuntimeSettings, get_runtime_settings

logger = logging.getLogger(__name__)


class NotificationEngine:
    """Schedules, batches, suppresses and tracks expiration notifications.

    All collaborators are injected. Call ``initialize()`` before scheduling;
    that precondition is not checked at runtime.

    Example:
        engine = NotificationEngine(platform=my_platform, store=InMemoryStore())
        await engine.initialize()
        notification_id = await engine.schedule_notification(alert)
    """

    def __init__(
        self,
        platform: NotificationPlatform,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        scheduler: Optional[TaskScheduler] = None,
        navigator: Optional[Navigator] = None,
        consumption: Optional[ConsumptionTracker] = None,
        settings_key: str = SETTINGS_KEY,
        records_key: str = RECORDS_KEY,
        retention_days: int = RETENTION_DAYS,
    ) -> None:
        self._platform = platform
        self._store = store
        self._clock = clock or SystemClock()
        self._navigator = navigator or LoggingNavigator()
        self._consumption = consumption or LoggingNavigator()

        self._settings_store = SettingsStore(store, key=settings_key)
        self._composer = NotificationComposer(lambda: self._settings_store.settings)
        self._tracker = LifecycleTracker(
            platform,
            store,
            self._clock,
            self._composer,
            key=records_key,
            retention_days=retention_days,
        )
        self._aggregator = BatchAggregator(
            scheduler or AsyncioScheduler(),
            lambda: self._settings_store.settings,
            self._schedule_immediate,
        )
        self._deferred: list[Alert] = []
        self._initialized = False

    # ── Properties ────────────────────────────────────────────────────

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def settings(self) -> NotificationSettings:
        return self._settings_store.settings

    @property
    def tracker(self) -> LifecycleTracker:
        return self._tracker

    @property
    def aggregator(self) -> BatchAggregator:
        return self._aggregator

    @property
    def deferred_alerts(self) -> list[Alert]:
        """Alerts held back by quiet hours, oldest first."""
        return list(self._deferred)

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create channels, load settings and records, clean up. Idempotent."""
        if self._initialized:
            return

        logger.info("Initializing notification engine")
        await self._create_channels()
        await self._settings_store.load()
        await self._tracker.load()
        await self._tracker.cleanup()
        await self.release_deferred()
        self._initialized = True
        logger.info("Notification engine initialized")

    async def _create_channels(self) -> None:
        for spec in default_channel_specs():
            try:
                await self._platform.create_channel(spec)
            except Exception:
                logger.exception("Failed to create notification channel %s", spec.channel_id)

    async def shutdown(self, flush: bool = True) -> None:
        """Stop the batch timer, delivering any queued alerts first.

        Also releases the store's connections when it holds any.
        """
        if flush:
            await self._aggregator.flush()
        self._aggregator.reset()

        if isinstance(self._store, SqlAlchemyStore):
            await self._store.dispose()

    # ── Scheduling ────────────────────────────────────────────────────

    async def schedule_notification(self, alert: Alert) -> Optional[str]:
        """Route one alert through suppression, batching and scheduling.

        Returns the notification id, a ``batch_`` placeholder when the alert
        was queued for batching, or None when it was blocked, deferred by
        quiet hours or could not be scheduled.
        """
        with NotificationContext(alert_id=alert.id):
            try:
                await self.release_deferred()
                return await self._dispatch(alert)
            except Exception:
                logger.exception("Failed to schedule notification for alert %s", alert.id)
                return None

    async def _dispatch(self, alert: Alert) -> Optional[str]:
        settings = self.settings
        decision = evaluate_suppression(alert, settings, self._clock.now())

        if decision == SuppressionDecision.BLOCK:
            logger.info(
                "Notifications disabled for type %s",
                alert.alert_type.value,
                extra={"alert_type": alert.alert_type.value, "decision": decision.value},
            )
            return None

        if decision == SuppressionDecision.QUEUE_FOR_LATER:
            self._defer(alert)
            return None

        if settings.batching.enabled:
            return await self._aggregator.add(alert)

        return await self._schedule_immediate(alert)

    def _defer(self, alert: Alert) -> None:
        if any(a.id == alert.id for a in self._deferred):
            return
        self._deferred.append(alert)
        logger.info(
            "Quiet hours active, deferred alert %s (%d waiting)",
            alert.id,
            len(self._deferred),
            extra={"severity": alert.severity.value, "decision": SuppressionDecision.QUEUE_FOR_LATER.value},
        )

    async def _schedule_immediate(self, alert: Alert) -> Optional[str]:
        title, message = self._composer.render(alert)
        now = self._clock.now()
        record = ScheduledNotification(
            alert_id=alert.id,
            type=alert.alert_type,
            title=title,
            message=message,
            scheduled_date=now,
            product_id=alert.product_id,
            created_at=now,
        )
        return await self._tracker.schedule(record)

    async def release_deferred(self) -> int:
        """Re-run alerts deferred by quiet hours once the quiet window ends.

        Called before every ``schedule_notification`` and after settings
        updates; hosts may also call it when the app returns to foreground.
        Returns the number of alerts released.
        """
        if not self._deferred or is_in_quiet_hours(self._clock.now(), self.settings.dnd):
            return 0

        pending, self._deferred = self._deferred, []
        released = 0
        index = 0
        try:
            while index < len(pending):
                alert = pending[index]
                with NotificationContext(alert_id=alert.id):
                    try:
                        await self._dispatch(alert)
                    except Exception:
                        logger.exception("Failed to release deferred alert %s", alert.id)
                    else:
                        if all(a.id != alert.id for a in self._deferred):
                            released += 1
                index += 1
        finally:
            # Interrupted releases keep the undispatched tail queued.
            remaining = pending[index:]
            if remaining:
                kept = {a.id for a in remaining}
                self._deferred = remaining + [a for a in self._deferred if a.id not in kept]

        logger.info("Released %d deferred alerts", released)
        return released

    async def flush_batch(self) -> Optional[Alert]:
        """Flush the batch queue now instead of waiting for the timer."""
        return await self._aggregator.flush()

    # ── Cancellation ──────────────────────────────────────────────────

    async def cancel_notification(self, notification_id: str) -> bool:
        """Cancel one notification. False when the id is unknown."""
        return await self._tracker.cancel(notification_id)

    async def cancel_all_notifications(self) -> None:
        await self._tracker.cancel_all()

    # ── Platform callbacks ────────────────────────────────────────────

    async def handle_delivered(
        self,
        notification_id: str,
        user_interaction: bool = False,
    ) -> Optional[ScheduledNotification]:
        """Delivery callback; a delivery that came with a tap also opens it."""
        with NotificationContext(notification_id=notification_id):
            record = await self._tracker.mark_delivered(notification_id)
            if record is not None and user_interaction:
                await self.handle_opened(notification_id)
            return record

    async def handle_opened(self, notification_id: str) -> Optional[ScheduledNotification]:
        record = await self._tracker.mark_opened(notification_id)
        if record is not None and record.is_opened:
            self._navigate(record)
        return record

    async def handle_dismissed(self, notification_id: str) -> Optional[ScheduledNotification]:
        return await self._tracker.mark_dismissed(notification_id)

    async def handle_interaction(
        self,
        notification_id: str,
        action: Optional[str] = None,
    ) -> Optional[ScheduledNotification]:
        """Interaction callback. Returns the affected record.

        ``snooze`` returns the rescheduled copy; a tap without an action,
        ``view_product`` and unrecognized actions count as an open.
        """
        with NotificationContext(notification_id=notification_id):
            if action is None:
                return await self.handle_opened(notification_id)

            record = await self._tracker.record_action(notification_id, action)
            if record is None:
                return None

            try:
                kind = InteractionAction(action)
            except ValueError:
                kind = None

            if kind == InteractionAction.SNOOZE:
                return await self.snooze_notification(notification_id)

            if kind == InteractionAction.MARK_CONSUMED:
                try:
                    await self._consumption.mark_consumed(record.product_id)
                except Exception:
                    logger.exception("Failed to mark product %s consumed", record.product_id)
                return record

            return await self.handle_opened(notification_id)

    def _navigate(self, record: ScheduledNotification) -> None:
        try:
            if record.product_id:
                self._navigator.open_product_detail(record.product_id)
            else:
                self._navigator.open_overview()
        except Exception:
            logger.exception("Navigation failed for notification %s", record.id)

    async def snooze_notification(self, notification_id: str) -> Optional[ScheduledNotification]:
        """Snooze for the configured minutes. Returns the rescheduled record."""
        timing = self.settings.timing
        return await self._tracker.snooze(
            notification_id,
            timing.snooze_minutes,
            cancel_original=timing.snooze_cancels_original,
        )

    # ── Settings ──────────────────────────────────────────────────────

    async def update_settings(
        self,
        changes: Union[NotificationSettings, dict],
    ) -> NotificationSettings:
        """Merge ``changes`` into the settings and persist them.

        Raises ValueError for invalid values. Alerts stranded by the change
        (a disabled batch queue, ended quiet hours) are delivered.
        """
        updated = await self._settings_store.update(changes)

        if not updated.batching.enabled and self._aggregator.pending_count:
            await self._aggregator.flush()
        await self.release_deferred()
        return copy.deepcopy(updated)

    def get_settings(self) -> NotificationSettings:
        return copy.deepcopy(self.settings)

    # ── Queries ───────────────────────────────────────────────────────

    def get_scheduled_notifications(self) -> list[ScheduledNotification]:
        """Non-cancelled notifications, earliest scheduled first."""
        return [copy.deepcopy(r) for r in self._tracker.active()]

    def get_notification_statistics(self) -> NotificationStatistics:
        return compute_statistics(self._tracker.records)

    async def cleanup(self) -> int:
        return await self._tracker.cleanup()


def create_notification_engine(
    runtime: Optional[RuntimeSettings] = None,
    platform: Optional[NotificationPlatform] = None,
    store: Optional[KeyValueStore] = None,
    **kwargs,
) -> NotificationEngine:
    """Build an engine from runtime settings.

    Uses the SQLAlchemy store when ``use_database`` is set, otherwise an
    in-memory store, and the logging platform when none is given.
    With ``setup_logging`` the root logger is configured from the runtime
    log level, format and service name.
    """
    runtime = runtime or get_runtime_settings()
    if runtime.setup_logging:
        configure_logging(LoggingConfig.from_runtime(runtime))

    if store is None:
        store = SqlAlchemyStore(runtime.database_url) if runtime.use_database else InMemoryStore()

    return NotificationEngine(
        platform=platform or LoggingPlatform(),
        store=store,
        settings_key=runtime.settings_key,
        records_key=runtime.records_key,
        retention_days=runtime.retention_days,
        **kwargs,
    )
