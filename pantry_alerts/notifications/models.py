"""Data models for expiration notifications."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Optional
import uuid

from dateutil.parser import isoparse

from pantry_alerts.notifications.config import AlertType, Severity


def new_notification_id() -> str:
    return f"notification_{uuid.uuid4().hex[:16]}"


def new_batch_id() -> str:
    return f"batch_{uuid.uuid4().hex[:16]}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Any) -> Optional[datetime]:
    """Parse a persisted timestamp; accepts datetimes and ISO strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return isoparse(str(value))


def to_aware(value: datetime) -> datetime:
    """Comparable form of a timestamp; naive values are taken as local time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


@dataclass(frozen=True)
class SuggestedAction:
    """Action suggested by the alert source (e.g. "Cook today")."""

    type: str
    title: str
    description: str = ""
    priority: int = 0


@dataclass(frozen=True)
class Product:
    """The tracked item an alert refers to."""

    id: str
    name: str
    category: str
    location: str = ""
    expiration_date: Optional[date] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    brand: Optional[str] = None


@dataclass(frozen=True)
class Alert:
    """Expiration alert produced upstream. Never mutated by the engine."""

    id: str
    product_id: str
    product: Product
    alert_type: AlertType
    severity: Severity
    days_until_expiration: int
    suggested_actions: tuple[SuggestedAction, ...] = ()


@dataclass(frozen=True)
class BatchAlert(Alert):
    """Composite alert standing in for several queued alerts."""

    title: str = ""
    message: str = ""
    members: tuple[Alert, ...] = ()

    @property
    def count(self) -> int:
        return len(self.members)

    @classmethod
    def from_members(
        cls,
        base: Alert,
        members: list[Alert],
        title: str,
        message: str,
    ) -> "BatchAlert":
        return cls(
            id=new_batch_id(),
            product_id=base.product_id,
            product=base.product,
            alert_type=AlertType.BATCH_EXPIRING,
            severity=base.severity,
            days_until_expiration=base.days_until_expiration,
            suggested_actions=base.suggested_actions,
            title=title,
            message=message,
            members=tuple(members),
        )


@dataclass
class NotificationInteraction:
    """What the user did with a delivered notification."""

    opened: bool = False
    opened_at: Optional[datetime] = None
    action: Optional[str] = None
    dismissed: bool = False
    dismissed_at: Optional[datetime] = None
    snoozed: bool = False
    snooze_until: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "opened": self.opened,
            "opened_at": _iso(self.opened_at),
            "action": self.action,
            "dismissed": self.dismissed,
            "dismissed_at": _iso(self.dismissed_at),
            "snoozed": self.snoozed,
            "snooze_until": _iso(self.snooze_until),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NotificationInteraction":
        return cls(
            opened=bool(data.get("opened", False)),
            opened_at=_parse(data.get("opened_at")),
            action=data.get("action"),
            dismissed=bool(data.get("dismissed", False)),
            dismissed_at=_parse(data.get("dismissed_at")),
            snoozed=bool(data.get("snoozed", False)),
            snooze_until=_parse(data.get("snooze_until")),
        )


@dataclass
class ScheduledNotification:
    """A notification handed to the platform and its lifecycle state."""

    alert_id: str
    type: AlertType
    title: str
    message: str
    scheduled_date: datetime
    product_id: str
    created_at: datetime
    id: str = field(default_factory=new_notification_id)
    is_delivered: bool = False
    is_cancelled: bool = False
    delivered_at: Optional[datetime] = None
    interaction: Optional[NotificationInteraction] = None

    @property
    def is_opened(self) -> bool:
        return self.interaction is not None and self.interaction.opened

    @property
    def is_dismissed(self) -> bool:
        return self.interaction is not None and self.interaction.dismissed

    def ensure_interaction(self) -> NotificationInteraction:
        if self.interaction is None:
            self.interaction = NotificationInteraction()
        return self.interaction

    def clone_for_snooze(self, snooze_until: datetime, now: datetime) -> "ScheduledNotification":
        """Copy of this record rescheduled for ``snooze_until``."""
        return replace(
            self,
            id=new_notification_id(),
            scheduled_date=snooze_until,
            created_at=now,
            is_delivered=False,
            is_cancelled=False,
            delivered_at=None,
            interaction=NotificationInteraction(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "alert_id": self.alert_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "scheduled_date": _iso(self.scheduled_date),
            "product_id": self.product_id,
            "is_delivered": self.is_delivered,
            "is_cancelled": self.is_cancelled,
            "created_at": _iso(self.created_at),
            "delivered_at": _iso(self.delivered_at),
            "interaction": self.interaction.to_dict() if self.interaction else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduledNotification":
        """Rebuild a record; raises KeyError/ValueError on malformed input."""
        interaction = data.get("interaction")
        return cls(
            id=data["id"],
            alert_id=data["alert_id"],
            type=AlertType(data["type"]),
            title=data.get("title", ""),
            message=data.get("message", ""),
            scheduled_date=_parse(data["scheduled_date"]),
            product_id=data.get("product_id", ""),
            is_delivered=bool(data.get("is_delivered", False)),
            is_cancelled=bool(data.get("is_cancelled", False)),
            created_at=_parse(data["created_at"]),
            delivered_at=_parse(data.get("delivered_at")),
            interaction=NotificationInteraction.from_dict(interaction) if interaction else None,
        )


@dataclass
class NotificationPayload:
    """Platform-agnostic notification handed to the OS primitive."""

    id: str
    title: str
    message: str
    channel_id: str
    color: str = "default"
    icon: str = "default"
    sound: str = "default"
    play_sound: bool = True
    vibrate: bool = True
    badge: bool = True
    priority: str = "default"
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "channel_id": self.channel_id,
            "color": self.color,
            "icon": self.icon,
            "sound": self.sound,
            "play_sound": self.play_sound,
            "vibrate": self.vibrate,
            "badge": self.badge,
            "priority": self.priority,
            "metadata": dict(self.metadata),
        }


@dataclass
class NotificationStatistics:
    """Engagement metrics derived from the notification records."""

    total_sent: int = 0
    total_delivered: int = 0
    total_opened: int = 0
    total_dismissed: int = 0
    open_rate: float = 0.0
    dismiss_rate: float = 0.0
    average_response_time: float = 0.0  # minutes
    most_active_hour: int = 0
    type_breakdown: dict[AlertType, int] = field(default_factory=dict)
    effectiveness_score: int = 0

    def to_dict(self) -> dict:
        return {
            "total_sent": self.total_sent,
            "total_delivered": self.total_delivered,
            "total_opened": self.total_opened,
            "total_dismissed": self.total_dismissed,
            "open_rate": round(self.open_rate, 2),
            "dismiss_rate": round(self.dismiss_rate, 2),
            "average_response_time": round(self.average_response_time, 2),
            "most_active_hour": self.most_active_hour,
            "type_breakdown": {t.value: n for t, n in self.type_breakdown.items()},
            "effectiveness_score": self.effectiveness_score,
        }
