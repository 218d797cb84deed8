"""Notification content and platform payload generation."""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from pantry_alerts.notifications.config import CHANNEL_BY_TYPE, PRIORITY_BY_TYPE, AlertType
from pantry_alerts.notifications.models import (
    Alert,
    BatchAlert,
    NotificationPayload,
    ScheduledNotification,
)
from pantry_alerts.notifications.preferences import NotificationSettings

logger = logging.getLogger(__name__)

FALLBACK_TITLES: dict[AlertType, str] = {
    AlertType.EXPIRED: "{productName} has expired",
    AlertType.CRITICAL_EXPIRING: "{productName} expires today",
    AlertType.EXPIRING_SOON: "{productName} is expiring soon",
    AlertType.CONSUME_PRIORITY: "Use {productName} first",
    AlertType.WASTE_WARNING: "Keep {productName} from going to waste",
    AlertType.BATCH_EXPIRING: "Several items are expiring soon",
}


def format_days(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def _format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _format_quantity(quantity: Optional[float]) -> str:
    quantity = quantity or 0
    if float(quantity).is_integer():
        return str(int(quantity))
    return str(quantity)


def replace_placeholders(template: str, alert: Alert) -> str:
    """Substitute ``{placeholder}`` tokens with values from the alert's product."""
    product = alert.product
    values = {
        "productName": product.name,
        "daysUntilExpiration": format_days(alert.days_until_expiration),
        "category": product.category,
        "location": product.location or "",
        "quantity": _format_quantity(product.quantity),
        "brand": product.brand or "",
        "expirationDate": _format_date(product.expiration_date),
    }
    if isinstance(alert, BatchAlert):
        values["count"] = str(alert.count)

    text = template
    for name, value in values.items():
        text = text.replace("{" + name + "}", value)
    return text


class NotificationComposer:
    """Turns alerts into titles/messages and records into platform payloads."""

    def __init__(self, settings_provider: Callable[[], NotificationSettings]):
        self._settings = settings_provider

    def render_title(self, alert: Alert) -> str:
        template = self._settings().messages.templates.get(alert.alert_type)
        if template:
            return replace_placeholders(template, alert)
        if isinstance(alert, BatchAlert) and alert.title:
            return alert.title
        return replace_placeholders(FALLBACK_TITLES[alert.alert_type], alert)

    def render_message(self, alert: Alert) -> str:
        if isinstance(alert, BatchAlert):
            return alert.message

        settings = self._settings()
        days = alert.days_until_expiration
        if days < 0:
            message = f"Expired {format_days(abs(days))} ago."
        elif days == 0:
            message = "Expires today."
        else:
            message = f"Expires in {format_days(days)}."

        if settings.messages.include_expiration_date and alert.product.expiration_date:
            message += f" Best before {_format_date(alert.product.expiration_date)}."

        if settings.messages.include_suggested_actions and alert.suggested_actions:
            message += f" Suggested: {alert.suggested_actions[0].title}."

        if alert.product.location:
            message += f" (Stored in: {alert.product.location})"

        return message

    def render(self, alert: Alert) -> tuple[str, str]:
        return self.render_title(alert), self.render_message(alert)

    def build_payload(self, record: ScheduledNotification) -> NotificationPayload:
        """Platform payload for a scheduled notification record."""
        settings = self._settings()
        alert_type = record.type

        return NotificationPayload(
            id=record.id,
            title=record.title,
            message=record.message,
            channel_id=CHANNEL_BY_TYPE[alert_type].value,
            color=settings.visual.colors_by_type.get(alert_type) or "default",
            icon=settings.visual.icons_by_type.get(alert_type) or "default",
            sound=settings.sound.sounds_by_type.get(alert_type) or "default",
            play_sound=settings.sound.enable_sound,
            vibrate=settings.sound.enable_vibration,
            badge=settings.visual.enable_badge,
            priority=PRIORITY_BY_TYPE[alert_type].value,
            metadata={
                "alert_id": record.alert_id,
                "product_id": record.product_id,
                "type": alert_type.value,
                "scheduled_date": record.scheduled_date.isoformat(),
            },
        )
