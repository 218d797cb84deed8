"""Platform notification primitive and interaction collaborators.

The OS-level delivery mechanism, navigation and product updates live outside
the engine. Each has a protocol here plus a logging implementation used in
demo mode when no real backend is wired in.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from pantry_alerts.notifications.config import (
    ANDROID_IMPORTANCE,
    CHANNEL_CONFIGS,
    ChannelId,
    Importance,
)
from pantry_alerts.notifications.models import NotificationPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelSpec:
    """Definition of a platform notification channel."""

    channel_id: str
    name: str
    description: str
    importance: Importance
    sound: str = "default"
    vibration: bool = False
    lights: bool = False
    badge: bool = True

    @property
    def android_importance(self) -> int:
        return ANDROID_IMPORTANCE[self.importance]

    def to_dict(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "name": self.name,
            "description": self.description,
            "importance": self.android_importance,
            "play_sound": bool(self.sound),
            "sound_name": self.sound or "default",
            "vibrate": self.vibration,
        }


def default_channel_specs() -> list[ChannelSpec]:
    """Channel specs for every ChannelId."""
    return [
        ChannelSpec(channel_id=channel.value, **CHANNEL_CONFIGS[channel])
        for channel in ChannelId
    ]


@runtime_checkable
class NotificationPlatform(Protocol):
    """Protocol for the OS notification primitive."""

    async def schedule_at(self, payload: NotificationPayload, when: datetime) -> None: ...

    async def cancel(self, notification_id: str) -> None: ...

    async def cancel_all(self) -> None: ...

    async def create_channel(self, spec: ChannelSpec) -> bool: ...


@runtime_checkable
class Navigator(Protocol):
    """Protocol for screen navigation triggered by notification taps."""

    def open_product_detail(self, product_id: str) -> None: ...

    def open_overview(self) -> None: ...


@runtime_checkable
class ConsumptionTracker(Protocol):
    """Protocol for marking a product consumed from a notification action."""

    async def mark_consumed(self, product_id: str) -> None: ...


class LoggingPlatform:
    """Notification platform in demo mode: logs instead of delivering."""

    def __init__(self) -> None:
        self._scheduled: dict[str, NotificationPayload] = {}
        self._channels: dict[str, ChannelSpec] = {}

    async def schedule_at(self, payload: NotificationPayload, when: datetime) -> None:
        self._scheduled[payload.id] = payload
        logger.info("[PLATFORM] %s scheduled for %s: %s", payload.id, when.isoformat(), payload.title)

    async def cancel(self, notification_id: str) -> None:
        self._scheduled.pop(notification_id, None)
        logger.info("[PLATFORM] cancelled %s", notification_id)

    async def cancel_all(self) -> None:
        self._scheduled.clear()
        logger.info("[PLATFORM] cancelled all notifications")

    async def create_channel(self, spec: ChannelSpec) -> bool:
        created = spec.channel_id not in self._channels
        self._channels[spec.channel_id] = spec
        if created:
            logger.info("[PLATFORM] created channel %s", spec.name)
        return created

    @property
    def scheduled_ids(self) -> list[str]:
        return list(self._scheduled.keys())


class LoggingNavigator:
    """Navigator and consumption tracker in demo mode."""

    def open_product_detail(self, product_id: str) -> None:
        logger.info("Opening product detail for %s", product_id)

    def open_overview(self) -> None:
        logger.info("Opening expiration overview")

    async def mark_consumed(self, product_id: str) -> None:
        logger.info("Marking product %s as consumed", product_id)
