"""Expiration Alert Notifications.

Notification engine for food-expiration alerts supporting:
- Suppression by type and do-not-disturb windows
- Batch aggregation of alert bursts
- Template-based composition and channel routing
- Delivery/interaction lifecycle with snooze
- Engagement statistics
"""

from pantry_alerts.notifications.config import (
    AlertType,
    Severity,
    ChannelId,
    Importance,
    SuppressionDecision,
    InteractionAction,
    CHANNEL_BY_TYPE,
    PRIORITY_BY_TYPE,
    CHANNEL_CONFIGS,
    SEVERITY_WEIGHTS,
)
from pantry_alerts.notifications.models import (
    SuggestedAction,
    Product,
    Alert,
    BatchAlert,
    NotificationInteraction,
    ScheduledNotification,
    NotificationPayload,
    NotificationStatistics,
)
from pantry_alerts.notifications.preferences import (
    NotificationSettings,
    TimingSettings,
    SoundSettings,
    VisualSettings,
    BatchingSettings,
    DoNotDisturbSettings,
    QuietWindow,
    MessageSettings,
    SettingsStore,
)
from pantry_alerts.notifications.storage import KeyValueStore, InMemoryStore, SqlAlchemyStore
from pantry_alerts.notifications.scheduling import Clock, TaskScheduler, SystemClock, AsyncioScheduler
from pantry_alerts.notifications.platform import (
    ChannelSpec,
    NotificationPlatform,
    Navigator,
    ConsumptionTracker,
    LoggingPlatform,
    LoggingNavigator,
)
from pantry_alerts.notifications.suppression import evaluate_suppression, is_in_quiet_hours
from pantry_alerts.notifications.aggregation import BatchAggregator, build_batch_alert
from pantry_alerts.notifications.composer import NotificationComposer
from pantry_alerts.notifications.lifecycle import LifecycleTracker
from pantry_alerts.notifications.statistics import compute_statistics
from pantry_alerts.notifications.engine import NotificationEngine, create_notification_engine

__all__ = [
    # Config
    "AlertType",
    "Severity",
    "ChannelId",
    "Importance",
    "SuppressionDecision",
    "InteractionAction",
    "CHANNEL_BY_TYPE",
    "PRIORITY_BY_TYPE",
    "CHANNEL_CONFIGS",
    "SEVERITY_WEIGHTS",
    # Models
    "SuggestedAction",
    "Product",
    "Alert",
    "BatchAlert",
    "NotificationInteraction",
    "ScheduledNotification",
    "NotificationPayload",
    "NotificationStatistics",
    # Settings
    "NotificationSettings",
    "TimingSettings",
    "SoundSettings",
    "VisualSettings",
    "BatchingSettings",
    "DoNotDisturbSettings",
    "QuietWindow",
    "MessageSettings",
    "SettingsStore",
    # Collaborators
    "KeyValueStore",
    "InMemoryStore",
    "SqlAlchemyStore",
    "Clock",
    "TaskScheduler",
    "SystemClock",
    "AsyncioScheduler",
    "ChannelSpec",
    "NotificationPlatform",
    "Navigator",
    "ConsumptionTracker",
    "LoggingPlatform",
    "LoggingNavigator",
    # Components
    "evaluate_suppression",
    "is_in_quiet_hours",
    "BatchAggregator",
    "build_batch_alert",
    "NotificationComposer",
    "LifecycleTracker",
    "compute_statistics",
    # Engine
    "NotificationEngine",
    "create_notification_engine",
]
