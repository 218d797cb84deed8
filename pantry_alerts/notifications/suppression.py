"""Suppression rules: type disablement and do-not-disturb windows."""

import logging
from datetime import datetime

from pantry_alerts.notifications.config import Severity, SuppressionDecision
from pantry_alerts.notifications.models import Alert
from pantry_alerts.notifications.preferences import (
    DoNotDisturbSettings,
    NotificationSettings,
    QuietWindow,
    parse_hhmm,
)

logger = logging.getLogger(__name__)


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday with 0=Sunday .. 6=Saturday, the convention used by schedules."""
    return (moment.weekday() + 1) % 7


def is_time_in_window(minute_of_day: int, start: int, end: int) -> bool:
    """Whether ``minute_of_day`` falls in [start, end).

    An end earlier than start means the window crosses midnight.
    A window whose start equals its end is empty.
    """
    if start <= end:
        return start <= minute_of_day < end
    return minute_of_day >= start or minute_of_day < end


def _window_active(window: QuietWindow, weekday: int, minute_of_day: int) -> bool:
    if weekday not in window.days:
        return False
    try:
        start = parse_hhmm(window.start)
        end = parse_hhmm(window.end)
    except ValueError:
        logger.warning("Skipping quiet window with invalid times %s-%s", window.start, window.end)
        return False
    return is_time_in_window(minute_of_day, start, end)


def is_in_quiet_hours(now: datetime, dnd: DoNotDisturbSettings) -> bool:
    """Check whether any do-not-disturb window covers ``now``."""
    if not dnd.enabled:
        return False

    weekday = sunday_based_weekday(now)
    minute_of_day = now.hour * 60 + now.minute
    return any(_window_active(w, weekday, minute_of_day) for w in dnd.schedule)


def should_override_quiet_hours(alert: Alert, dnd: DoNotDisturbSettings) -> bool:
    return dnd.emergency_override and alert.severity == Severity.CRITICAL


def evaluate_suppression(
    alert: Alert,
    settings: NotificationSettings,
    now: datetime,
) -> SuppressionDecision:
    """Decide whether ``alert`` may be delivered right now.

    Returns BLOCK when notifications or the alert's type are disabled,
    QUEUE_FOR_LATER inside quiet hours (unless a critical alert overrides
    them), and ALLOW otherwise.
    """
    if not settings.enabled or not settings.is_type_enabled(alert.alert_type):
        return SuppressionDecision.BLOCK

    if is_in_quiet_hours(now, settings.dnd):
        if should_override_quiet_hours(alert, settings.dnd):
            return SuppressionDecision.ALLOW
        return SuppressionDecision.QUEUE_FOR_LATER

    return SuppressionDecision.ALLOW
