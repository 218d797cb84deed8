"""User notification preferences and their persistence."""

import copy
import logging
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable, Optional, Union

from pantry_alerts.notifications.config import SETTINGS_KEY, AlertType
from pantry_alerts.notifications.storage import KeyValueStore

logger = logging.getLogger(__name__)


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" to minutes after midnight."""
    hours, minutes = str(value).split(":")
    h, m = int(hours), int(minutes)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Time out of range: {value!r}")
    return h * 60 + m


DEFAULT_TEMPLATES: dict[AlertType, str] = {
    AlertType.EXPIRED: "{productName} has expired",
    AlertType.CRITICAL_EXPIRING: "{productName} expires today",
    AlertType.EXPIRING_SOON: "{productName} expires in {daysUntilExpiration}",
    AlertType.CONSUME_PRIORITY: "Use {productName} first",
    AlertType.WASTE_WARNING: "Don't let {productName} go to waste",
}

DEFAULT_COLORS: dict[AlertType, str] = {
    AlertType.EXPIRED: "#FF4444",
    AlertType.CRITICAL_EXPIRING: "#FF8800",
    AlertType.EXPIRING_SOON: "#FFBB33",
    AlertType.CONSUME_PRIORITY: "#00C851",
    AlertType.WASTE_WARNING: "#33B5E5",
    AlertType.BATCH_EXPIRING: "#AA66CC",
}

DEFAULT_ICONS: dict[AlertType, str] = {
    AlertType.EXPIRED: "warning",
    AlertType.CRITICAL_EXPIRING: "alarm",
    AlertType.EXPIRING_SOON: "schedule",
    AlertType.CONSUME_PRIORITY: "restaurant",
    AlertType.WASTE_WARNING: "recycling",
    AlertType.BATCH_EXPIRING: "inventory",
}


@dataclass
class QuietHours:
    start: str = "22:00"
    end: str = "07:00"


@dataclass
class TimingSettings:
    """When notifications may be sent and how snoozing behaves."""

    morning_time: str = "09:00"
    evening_time: str = "18:00"
    enable_morning: bool = True
    enable_evening: bool = True
    enable_realtime: bool = True
    snooze_minutes: int = 30
    max_per_day: int = 10
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    snooze_cancels_original: bool = True


@dataclass
class SoundSettings:
    enable_sound: bool = True
    sounds_by_type: dict[AlertType, str] = field(
        default_factory=lambda: {t: "default" for t in AlertType}
    )
    enable_vibration: bool = True


@dataclass
class VisualSettings:
    enable_badge: bool = True
    enable_light_indicator: bool = True
    colors_by_type: dict[AlertType, str] = field(default_factory=lambda: dict(DEFAULT_COLORS))
    icons_by_type: dict[AlertType, str] = field(default_factory=lambda: dict(DEFAULT_ICONS))
    enable_rich_notifications: bool = True
    show_product_image: bool = True


@dataclass
class BatchingSettings:
    """Aggregation of alert bursts into a single notification."""

    enabled: bool = True
    timeout_minutes: float = 5
    max_batch_size: int = 5
    by_category: bool = True
    by_severity: bool = True


@dataclass
class QuietWindow:
    """One do-not-disturb window; days use 0=Sunday .. 6=Saturday."""

    days: list[int] = field(default_factory=lambda: list(range(7)))
    start: str = "22:00"
    end: str = "07:00"


@dataclass
class DoNotDisturbSettings:
    enabled: bool = False
    schedule: list[QuietWindow] = field(default_factory=lambda: [QuietWindow()])
    emergency_override: bool = True


@dataclass
class MessageSettings:
    templates: dict[AlertType, str] = field(default_factory=lambda: dict(DEFAULT_TEMPLATES))
    include_suggested_actions: bool = True
    include_expiration_date: bool = True


@dataclass
class NotificationSettings:
    """Complete user-facing notification configuration."""

    enabled: bool = True
    enabled_types: dict[AlertType, bool] = field(
        default_factory=lambda: {t: True for t in AlertType}
    )
    timing: TimingSettings = field(default_factory=TimingSettings)
    sound: SoundSettings = field(default_factory=SoundSettings)
    visual: VisualSettings = field(default_factory=VisualSettings)
    batching: BatchingSettings = field(default_factory=BatchingSettings)
    dnd: DoNotDisturbSettings = field(default_factory=DoNotDisturbSettings)
    messages: MessageSettings = field(default_factory=MessageSettings)

    def is_type_enabled(self, alert_type: AlertType) -> bool:
        return self.enabled_types.get(alert_type, True)

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "enabled_types": _enum_map_out(self.enabled_types),
            "timing": {
                "morning_time": self.timing.morning_time,
                "evening_time": self.timing.evening_time,
                "enable_morning": self.timing.enable_morning,
                "enable_evening": self.timing.enable_evening,
                "enable_realtime": self.timing.enable_realtime,
                "snooze_minutes": self.timing.snooze_minutes,
                "max_per_day": self.timing.max_per_day,
                "quiet_hours": {
                    "start": self.timing.quiet_hours.start,
                    "end": self.timing.quiet_hours.end,
                },
                "snooze_cancels_original": self.timing.snooze_cancels_original,
            },
            "sound": {
                "enable_sound": self.sound.enable_sound,
                "sounds_by_type": _enum_map_out(self.sound.sounds_by_type),
                "enable_vibration": self.sound.enable_vibration,
            },
            "visual": {
                "enable_badge": self.visual.enable_badge,
                "enable_light_indicator": self.visual.enable_light_indicator,
                "colors_by_type": _enum_map_out(self.visual.colors_by_type),
                "icons_by_type": _enum_map_out(self.visual.icons_by_type),
                "enable_rich_notifications": self.visual.enable_rich_notifications,
                "show_product_image": self.visual.show_product_image,
            },
            "batching": {
                "enabled": self.batching.enabled,
                "timeout_minutes": self.batching.timeout_minutes,
                "max_batch_size": self.batching.max_batch_size,
                "by_category": self.batching.by_category,
                "by_severity": self.batching.by_severity,
            },
            "dnd": {
                "enabled": self.dnd.enabled,
                "schedule": [
                    {"days": list(w.days), "start": w.start, "end": w.end}
                    for w in self.dnd.schedule
                ],
                "emergency_override": self.dnd.emergency_override,
            },
            "messages": {
                "templates": _enum_map_out(self.messages.templates),
                "include_suggested_actions": self.messages.include_suggested_actions,
                "include_expiration_date": self.messages.include_expiration_date,
            },
        }

    @classmethod
    def from_dict(cls, data: Optional[dict], strict: bool = False) -> "NotificationSettings":
        """Build settings from a dict.

        With ``strict=False`` (loading persisted data) every malformed field is
        logged and replaced by its default. With ``strict=True`` (API updates)
        the first malformed field raises ValueError.
        """
        defaults = cls()
        if not isinstance(data, dict):
            if strict:
                raise ValueError("Settings must be a mapping")
            return defaults

        r = _Reader(data, "settings", strict)
        timing = _Reader(r.section("timing"), "timing", strict)
        quiet = _Reader(timing.section("quiet_hours"), "timing.quiet_hours", strict)
        sound = _Reader(r.section("sound"), "sound", strict)
        visual = _Reader(r.section("visual"), "visual", strict)
        batching = _Reader(r.section("batching"), "batching", strict)
        dnd = _Reader(r.section("dnd"), "dnd", strict)
        messages = _Reader(r.section("messages"), "messages", strict)

        return cls(
            enabled=r.get("enabled", defaults.enabled, _bool),
            enabled_types=r.enum_map("enabled_types", defaults.enabled_types, _bool),
            timing=TimingSettings(
                morning_time=timing.get("morning_time", defaults.timing.morning_time, _time),
                evening_time=timing.get("evening_time", defaults.timing.evening_time, _time),
                enable_morning=timing.get("enable_morning", defaults.timing.enable_morning, _bool),
                enable_evening=timing.get("enable_evening", defaults.timing.enable_evening, _bool),
                enable_realtime=timing.get("enable_realtime", defaults.timing.enable_realtime, _bool),
                snooze_minutes=timing.get("snooze_minutes", defaults.timing.snooze_minutes, _positive_int),
                max_per_day=timing.get("max_per_day", defaults.timing.max_per_day, _positive_int),
                quiet_hours=QuietHours(
                    start=quiet.get("start", defaults.timing.quiet_hours.start, _time),
                    end=quiet.get("end", defaults.timing.quiet_hours.end, _time),
                ),
                snooze_cancels_original=timing.get(
                    "snooze_cancels_original", defaults.timing.snooze_cancels_original, _bool
                ),
            ),
            sound=SoundSettings(
                enable_sound=sound.get("enable_sound", defaults.sound.enable_sound, _bool),
                sounds_by_type=sound.enum_map("sounds_by_type", defaults.sound.sounds_by_type, _str),
                enable_vibration=sound.get("enable_vibration", defaults.sound.enable_vibration, _bool),
            ),
            visual=VisualSettings(
                enable_badge=visual.get("enable_badge", defaults.visual.enable_badge, _bool),
                enable_light_indicator=visual.get(
                    "enable_light_indicator", defaults.visual.enable_light_indicator, _bool
                ),
                colors_by_type=visual.enum_map("colors_by_type", defaults.visual.colors_by_type, _str),
                icons_by_type=visual.enum_map("icons_by_type", defaults.visual.icons_by_type, _str),
                enable_rich_notifications=visual.get(
                    "enable_rich_notifications", defaults.visual.enable_rich_notifications, _bool
                ),
                show_product_image=visual.get(
                    "show_product_image", defaults.visual.show_product_image, _bool
                ),
            ),
            batching=BatchingSettings(
                enabled=batching.get("enabled", defaults.batching.enabled, _bool),
                timeout_minutes=batching.get(
                    "timeout_minutes", defaults.batching.timeout_minutes, _positive_number
                ),
                max_batch_size=batching.get(
                    "max_batch_size", defaults.batching.max_batch_size, _positive_int
                ),
                by_category=batching.get("by_category", defaults.batching.by_category, _bool),
                by_severity=batching.get("by_severity", defaults.batching.by_severity, _bool),
            ),
            dnd=DoNotDisturbSettings(
                enabled=dnd.get("enabled", defaults.dnd.enabled, _bool),
                schedule=dnd.get("schedule", defaults.dnd.schedule, _schedule),
                emergency_override=dnd.get(
                    "emergency_override", defaults.dnd.emergency_override, _bool
                ),
            ),
            messages=MessageSettings(
                # Templates replace the default set wholesale so a removed
                # template falls back to the built-in copy.
                templates=messages.enum_map(
                    "templates", defaults.messages.templates, _str, merge=False
                ),
                include_suggested_actions=messages.get(
                    "include_suggested_actions", defaults.messages.include_suggested_actions, _bool
                ),
                include_expiration_date=messages.get(
                    "include_expiration_date", defaults.messages.include_expiration_date, _bool
                ),
            ),
        )


# ── Field conversion ────────────────────────────────────────────────


def _bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"Expected bool, got {type(value).__name__}")
    return value


def _str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected str, got {type(value).__name__}")
    return value


def _positive_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Expected positive int, got {value!r}")
    return value


def _positive_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"Expected positive number, got {value!r}")
    return value


def _time(value: Any) -> str:
    parse_hhmm(_str(value))
    return value


def _schedule(value: Any) -> list[QuietWindow]:
    if not isinstance(value, list):
        raise TypeError("Expected a list of quiet windows")
    windows = []
    for entry in value:
        days = entry["days"]
        if not isinstance(days, list) or any(
            isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days
        ):
            raise ValueError(f"Invalid days: {days!r}")
        windows.append(QuietWindow(days=list(days), start=_time(entry["start"]), end=_time(entry["end"])))
    return windows


def _enum_map_out(mapping: dict[AlertType, Any]) -> dict[str, Any]:
    return {alert_type.value: value for alert_type, value in mapping.items()}


class _Reader:
    """Reads one settings section, applying the strict/tolerant policy."""

    def __init__(self, data: Any, section: str, strict: bool):
        self._section = section
        self._strict = strict
        if isinstance(data, dict):
            self._data = data
        else:
            self._fail(section, data, TypeError("Expected a mapping"))
            self._data = {}

    def _fail(self, key: str, value: Any, exc: Exception) -> None:
        if self._strict:
            raise ValueError(f"Invalid setting {key}={value!r}: {exc}") from exc
        logger.warning("Ignoring invalid setting %s=%r (%s)", key, value, exc)

    def section(self, key: str) -> Any:
        return self._data.get(key, {})

    def get(self, key: str, default: Any, convert: Callable[[Any], Any]) -> Any:
        if key not in self._data:
            return copy.deepcopy(default)
        value = self._data[key]
        try:
            return convert(value)
        except (KeyError, TypeError, ValueError) as exc:
            self._fail(f"{self._section}.{key}", value, exc)
            return copy.deepcopy(default)

    def enum_map(
        self,
        key: str,
        default: dict[AlertType, Any],
        convert: Callable[[Any], Any],
        merge: bool = True,
    ) -> dict[AlertType, Any]:
        if key not in self._data:
            return dict(default)
        raw = self._data[key]
        if not isinstance(raw, dict):
            self._fail(f"{self._section}.{key}", raw, TypeError("Expected a mapping"))
            return dict(default)

        result = dict(default) if merge else {}
        for raw_key, raw_value in raw.items():
            try:
                alert_type = raw_key if isinstance(raw_key, AlertType) else AlertType(raw_key)
                result[alert_type] = convert(raw_value)
            except (TypeError, ValueError) as exc:
                self._fail(f"{self._section}.{key}.{raw_key}", raw_value, exc)
        return result


def _deep_merge(base: dict, update: dict) -> dict:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict) and key not in _REPLACED_MAPS:
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# Maps that an update replaces instead of merging into.
_REPLACED_MAPS = {"templates"}


class SettingsStore:
    """Holds the current NotificationSettings and persists every change."""

    def __init__(self, store: KeyValueStore, key: str = SETTINGS_KEY):
        self._store = store
        self._key = key
        self._settings = NotificationSettings()

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    async def load(self) -> NotificationSettings:
        """Hydrate from the store; malformed data falls back to defaults."""
        try:
            data = await self._store.get(self._key)
        except Exception:
            logger.exception("Failed to load notification settings")
            return self._settings

        if data is not None:
            self._settings = NotificationSettings.from_dict(data)
            logger.info("Loaded notification settings")
        return self._settings

    async def save(self) -> bool:
        try:
            await self._store.set(self._key, self._settings.to_dict())
            return True
        except Exception:
            logger.exception("Failed to save notification settings")
            return False

    async def update(
        self,
        changes: Union[NotificationSettings, dict],
    ) -> NotificationSettings:
        """Replace the settings with ``changes`` merged over the current ones.

        Raises ValueError when ``changes`` holds an invalid value; the current
        settings are left untouched in that case.
        """
        if isinstance(changes, NotificationSettings):
            updated = NotificationSettings.from_dict(changes.to_dict(), strict=True)
        else:
            updated = NotificationSettings.from_dict(
                _deep_merge(self._settings.to_dict(), _normalize_keys(changes)),
                strict=True,
            )
        self._settings = updated
        await self.save()
        logger.info("Notification settings updated")
        return updated


def _normalize_keys(value: Any) -> Any:
    """Turn AlertType keys into their string values, recursively."""
    if is_dataclass(value) and not isinstance(value, type):
        return _normalize_keys(asdict(value))
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, AlertType) else k): _normalize_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_normalize_keys(v) for v in value]
    return value
