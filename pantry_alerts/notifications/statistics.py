"""Engagement statistics over scheduled notification records."""

import math
from collections import Counter
from statistics import fmean
from typing import Iterable

from pantry_alerts.notifications.config import AlertType
from pantry_alerts.notifications.models import (
    NotificationStatistics,
    ScheduledNotification,
    to_aware,
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _response_minutes(record: ScheduledNotification) -> float:
    opened_at = record.interaction.opened_at
    return (to_aware(opened_at) - to_aware(record.delivered_at)).total_seconds() / 60


def compute_statistics(records: Iterable[ScheduledNotification]) -> NotificationStatistics:
    """Derive engagement metrics. Cancelled records are counted like any other."""
    records = list(records)
    delivered = [r for r in records if r.is_delivered]
    opened = [r for r in delivered if r.is_opened]
    dismissed = [r for r in delivered if r.is_dismissed]

    total_delivered = len(delivered)
    open_rate = len(opened) / total_delivered * 100 if total_delivered else 0.0
    dismiss_rate = len(dismissed) / total_delivered * 100 if total_delivered else 0.0

    response_times = [
        _response_minutes(r)
        for r in records
        if r.delivered_at is not None and r.interaction is not None and r.interaction.opened_at is not None
    ]
    average_response_time = fmean(response_times) if response_times else 0.0

    type_breakdown = {alert_type: 0 for alert_type in AlertType}
    for record in records:
        type_breakdown[record.type] += 1

    hour_counts = Counter(r.delivered_at.hour for r in delivered if r.delivered_at is not None)
    most_active_hour = 0
    if hour_counts:
        # Highest count, lowest hour on ties.
        most_active_hour = min(hour_counts, key=lambda hour: (-hour_counts[hour], hour))

    return NotificationStatistics(
        total_sent=len(records),
        total_delivered=total_delivered,
        total_opened=len(opened),
        total_dismissed=len(dismissed),
        open_rate=open_rate,
        dismiss_rate=dismiss_rate,
        average_response_time=average_response_time,
        most_active_hour=most_active_hour,
        type_breakdown=type_breakdown,
        effectiveness_score=_round_half_up(open_rate * 0.6 + (100 - dismiss_rate) * 0.4),
    )
