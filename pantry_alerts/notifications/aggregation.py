"""Batch aggregation of alert bursts into a single notification."""

import logging
from typing import Awaitable, Callable, Optional

from pantry_alerts.notifications.config import BATCH_SUMMARY_GROUPS, Severity
from pantry_alerts.notifications.models import Alert, BatchAlert, new_batch_id
from pantry_alerts.notifications.preferences import BatchingSettings, NotificationSettings
from pantry_alerts.notifications.scheduling import TaskHandle, TaskScheduler

logger = logging.getLogger(__name__)


def _items(count: int) -> str:
    return f"{count} item" if count == 1 else f"{count} items"


def most_severe(alerts: list[Alert]) -> Alert:
    """Most severe alert; the first one wins ties."""
    chosen = alerts[0]
    for alert in alerts[1:]:
        if alert.severity.weight > chosen.severity.weight:
            chosen = alert
    return chosen


def group_alerts(alerts: list[Alert], batching: BatchingSettings) -> list[tuple[str, list[Alert]]]:
    """Group alerts for the batch summary, in first-seen order.

    Groups are keyed by product category when ``by_category`` is set,
    otherwise every alert forms its own group. With ``by_severity`` the
    groups are ordered by their most severe member (stable).
    """
    groups: dict[str, list[Alert]] = {}
    for index, alert in enumerate(alerts):
        key = alert.product.category if batching.by_category else f"{index}:{alert.id}"
        groups.setdefault(key, []).append(alert)

    ordered = [(members[0].product.category, members) for members in groups.values()]
    if batching.by_severity:
        ordered.sort(key=lambda g: most_severe(g[1]).severity.weight, reverse=True)
    return ordered


def summarize_groups(groups: list[tuple[str, list[Alert]]]) -> str:
    parts = []
    for category, members in groups:
        if len(members) == 1:
            parts.append(members[0].product.name)
        else:
            parts.append(f"{category} × {len(members)}")

    message = ", ".join(parts[:BATCH_SUMMARY_GROUPS])
    if len(parts) > BATCH_SUMMARY_GROUPS:
        message += f" and {len(parts) - BATCH_SUMMARY_GROUPS} more"
    return message


def build_batch_alert(alerts: list[Alert], batching: BatchingSettings) -> BatchAlert:
    """Synthesize one BATCH_EXPIRING alert standing in for ``alerts``."""
    critical_count = sum(1 for a in alerts if a.severity == Severity.CRITICAL)
    if critical_count > 0:
        title = f"{_items(critical_count)} expired or expiring critically"
    else:
        title = f"{_items(len(alerts))} expiring soon"

    message = summarize_groups(group_alerts(alerts, batching))
    return BatchAlert.from_members(most_severe(alerts), alerts, title=title, message=message)


class BatchAggregator:
    """Collects alerts and flushes them on a timeout or a size threshold.

    At most one flush timer is alive at a time. ``flush()`` drains the whole
    queue before awaiting anything, so alerts added while a flush is being
    delivered start a new batch.
    """

    def __init__(
        self,
        scheduler: TaskScheduler,
        settings_provider: Callable[[], NotificationSettings],
        on_flush: Callable[[Alert], Awaitable[object]],
    ) -> None:
        self._scheduler = scheduler
        self._settings = settings_provider
        self._on_flush = on_flush
        self._queue: list[Alert] = []
        self._timer: Optional[TaskHandle] = None

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    @property
    def pending_alerts(self) -> list[Alert]:
        return list(self._queue)

    async def add(self, alert: Alert) -> str:
        """Queue an alert. Returns a placeholder id for the pending batch."""
        batching = self._settings().batching
        self._queue.append(alert)

        if self._timer is None:
            self._timer = self._arm_timer(batching.timeout_minutes * 60)

        logger.debug(
            "Queued alert %s for batching (%d/%d)",
            alert.id,
            len(self._queue),
            batching.max_batch_size,
        )

        if len(self._queue) >= batching.max_batch_size:
            await self.flush()

        return new_batch_id()

    def _arm_timer(self, delay_seconds: float) -> TaskHandle:
        handle: Optional[TaskHandle] = None

        async def _on_timeout() -> None:
            # A timer that fired before being cancelled may still run late.
            if self._timer is not handle:
                logger.debug("Ignoring stale batch timer")
                return
            self._timer = None
            await self.flush()

        handle = self._scheduler.call_later(delay_seconds, _on_timeout)
        return handle

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def flush(self) -> Optional[Alert]:
        """Drain the queue and hand one (single or batch) alert downstream."""
        batch, self._queue = self._queue, []
        self._cancel_timer()

        if not batch:
            return None

        if len(batch) == 1:
            alert = batch[0]
        else:
            alert = build_batch_alert(batch, self._settings().batching)
            logger.info("Built batch notification for %d alerts", len(batch), extra={"batch_size": len(batch)})

        await self._on_flush(alert)
        return alert

    def reset(self) -> None:
        """Drop queued alerts and stop the timer."""
        dropped = len(self._queue)
        self._queue = []
        self._cancel_timer()
        if dropped:
            logger.info("Batch aggregator reset, dropped %d alerts", dropped)
