"""Configuration for expiration notifications."""

from enum import Enum


class AlertType(Enum):
    """Expiration alert types."""
    EXPIRED = "expired"
    CRITICAL_EXPIRING = "critical_expiring"
    EXPIRING_SOON = "expiring_soon"
    CONSUME_PRIORITY = "consume_priority"
    WASTE_WARNING = "waste_warning"
    BATCH_EXPIRING = "batch_expiring"


class Severity(Enum):
    """Alert severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self]


class ChannelId(Enum):
    """Platform notification channels."""
    CRITICAL = "expiration_critical"
    HIGH = "expiration_high"
    NORMAL = "expiration_normal"
    BATCH = "expiration_batch"


class Importance(Enum):
    """Channel importance levels."""
    LOW = "low"
    DEFAULT = "default"
    HIGH = "high"
    MAX = "max"


class SuppressionDecision(Enum):
    """Outcome of evaluating an alert against the current settings."""
    ALLOW = "allow"
    QUEUE_FOR_LATER = "queue_for_later"
    BLOCK = "block"


class InteractionAction(Enum):
    """Actions attached to a delivered notification."""
    SNOOZE = "snooze"
    MARK_CONSUMED = "mark_consumed"
    VIEW_PRODUCT = "view_product"


SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

CHANNEL_BY_TYPE: dict[AlertType, ChannelId] = {
    AlertType.EXPIRED: ChannelId.CRITICAL,
    AlertType.CRITICAL_EXPIRING: ChannelId.CRITICAL,
    AlertType.EXPIRING_SOON: ChannelId.HIGH,
    AlertType.CONSUME_PRIORITY: ChannelId.HIGH,
    AlertType.WASTE_WARNING: ChannelId.HIGH,
    AlertType.BATCH_EXPIRING: ChannelId.BATCH,
}

PRIORITY_BY_TYPE: dict[AlertType, Importance] = {
    AlertType.EXPIRED: Importance.MAX,
    AlertType.CRITICAL_EXPIRING: Importance.MAX,
    AlertType.EXPIRING_SOON: Importance.HIGH,
    AlertType.CONSUME_PRIORITY: Importance.DEFAULT,
    AlertType.WASTE_WARNING: Importance.DEFAULT,
    AlertType.BATCH_EXPIRING: Importance.DEFAULT,
}

# Android importance codes
ANDROID_IMPORTANCE: dict[Importance, int] = {
    Importance.LOW: 2,
    Importance.DEFAULT: 3,
    Importance.HIGH: 4,
    Importance.MAX: 5,
}

CHANNEL_CONFIGS: dict[ChannelId, dict] = {
    ChannelId.CRITICAL: {
        "name": "Critical Expiration Alerts",
        "description": "Urgent notifications for expired or critically expiring items",
        "importance": Importance.MAX,
        "sound": "default",
        "vibration": True,
        "lights": True,
        "badge": True,
    },
    ChannelId.HIGH: {
        "name": "High Priority Expiration",
        "description": "Important expiration notifications",
        "importance": Importance.HIGH,
        "sound": "default",
        "vibration": True,
        "lights": True,
        "badge": True,
    },
    ChannelId.NORMAL: {
        "name": "Expiration Reminders",
        "description": "Regular expiration reminders and tips",
        "importance": Importance.DEFAULT,
        "sound": "default",
        "vibration": False,
        "lights": False,
        "badge": True,
    },
    ChannelId.BATCH: {
        "name": "Batch Notifications",
        "description": "Summarized notifications for multiple items",
        "importance": Importance.DEFAULT,
        "sound": "default",
        "vibration": False,
        "lights": False,
        "badge": True,
    },
}

SETTINGS_KEY = "notification_settings"
RECORDS_KEY = "scheduled_notifications"
RETENTION_DAYS = 7
BATCH_SUMMARY_GROUPS = 3
