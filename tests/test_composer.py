"""Tests for notification composition and payloads."""

from datetime import date, datetime, timezone

import pytest

from pantry_alerts.notifications import (
    AlertType,
    BatchingSettings,
    ChannelId,
    NotificationComposer,
    NotificationSettings,
    ScheduledNotification,
    Severity,
    build_batch_alert,
)
from pantry_alerts.notifications.composer import format_days, replace_placeholders

NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return NotificationSettings()


@pytest.fixture
def composer(settings):
    return NotificationComposer(lambda: settings)


def _record(alert_type=AlertType.EXPIRING_SOON, **kwargs) -> ScheduledNotification:
    return ScheduledNotification(
        alert_id="alert-1",
        type=alert_type,
        title="Milk expires in 2 days",
        message="Expires in 2 days.",
        scheduled_date=NOW,
        product_id="product-1",
        created_at=NOW,
        **kwargs,
    )


class TestPlaceholders:

    def test_format_days(self):
        assert format_days(1) == "1 day"
        assert format_days(0) == "0 days"
        assert format_days(3) == "3 days"

    def test_all_placeholders(self, make_alert):
        alert = make_alert(
            name="Greek Yogurt",
            category="dairy",
            location="Fridge",
            days=3,
            expiration_date=date(2026, 3, 7),
        )
        template = (
            "{productName}|{daysUntilExpiration}|{category}|{location}|"
            "{quantity}|{brand}|{expirationDate}"
        )
        assert replace_placeholders(template, alert) == (
            "Greek Yogurt|3 days|dairy|Fridge|1||2026-03-07"
        )

    def test_unknown_placeholder_left_alone(self, make_alert):
        assert replace_placeholders("{productName} {unknown}", make_alert()) == "Milk {unknown}"

    def test_repeated_placeholder(self, make_alert):
        assert replace_placeholders("{productName}/{productName}", make_alert()) == "Milk/Milk"

    def test_batch_count(self, make_alert):
        batch = build_batch_alert(
            [make_alert(alert_id="a1"), make_alert(alert_id="a2")],
            BatchingSettings(),
        )
        assert replace_placeholders("{count} items", batch) == "2 items"


class TestTitles:

    def test_default_template(self, composer, make_alert):
        assert composer.render_title(make_alert(name="Milk", days=2)) == "Milk expires in 2 days"

    def test_custom_template(self, composer, settings, make_alert):
        settings.messages.templates[AlertType.EXPIRED] = "Toss the {productName} from the {location}"
        alert = make_alert(alert_type=AlertType.EXPIRED, location="pantry", days=-2)
        assert composer.render_title(alert) == "Toss the Milk from the pantry"

    def test_fallback_without_template(self, composer, settings, make_alert):
        settings.messages.templates = {}
        alert = make_alert(alert_type=AlertType.EXPIRING_SOON)
        assert composer.render_title(alert) == "Milk is expiring soon"

    def test_fallback_for_every_type(self, composer, settings, make_alert):
        settings.messages.templates = {}
        for alert_type in AlertType:
            assert composer.render_title(make_alert(alert_type=alert_type))

    def test_batch_title(self, composer, make_alert):
        batch = build_batch_alert(
            [make_alert(alert_id="a1"), make_alert(alert_id="a2")],
            BatchingSettings(),
        )
        assert composer.render_title(batch) == "2 items expiring soon"

    def test_batch_template_overrides(self, composer, settings, make_alert):
        settings.messages.templates[AlertType.BATCH_EXPIRING] = "{count} things to use up"
        batch = build_batch_alert(
            [make_alert(alert_id="a1"), make_alert(alert_id="a2")],
            BatchingSettings(),
        )
        assert composer.render_title(batch) == "2 things to use up"


class TestMessages:

    def test_expiring(self, composer, make_alert):
        assert composer.render_message(make_alert(days=1)) == "Expires in 1 day."

    def test_today(self, composer, make_alert):
        assert composer.render_message(make_alert(days=0)) == "Expires today."

    def test_expired(self, composer, make_alert):
        assert composer.render_message(make_alert(days=-3)) == "Expired 3 days ago."

    def test_full_message(self, composer, make_alert, cook_today):
        alert = make_alert(
            days=2,
            location="Fridge",
            expiration_date=date(2026, 3, 6),
            suggested_actions=(cook_today,),
        )
        assert composer.render_message(alert) == (
            "Expires in 2 days. Best before 2026-03-06. Suggested: Cook today. (Stored in: Fridge)"
        )

    def test_flags_disable_extras(self, composer, settings, make_alert, cook_today):
        settings.messages.include_expiration_date = False
        settings.messages.include_suggested_actions = False
        alert = make_alert(days=2, expiration_date=date(2026, 3, 6), suggested_actions=(cook_today,))
        assert composer.render_message(alert) == "Expires in 2 days."

    def test_batch_message(self, composer, make_alert):
        batch = build_batch_alert(
            [make_alert(alert_id="a1", name="Milk", category="dairy"),
             make_alert(alert_id="a2", name="Apples", category="produce")],
            BatchingSettings(),
        )
        assert composer.render_message(batch) == "Milk, Apples"


class TestPayload:

    def test_payload_fields(self, composer):
        payload = composer.build_payload(_record())
        assert payload.id.startswith("notification_")
        assert payload.channel_id == ChannelId.HIGH.value
        assert payload.color == "#FFBB33"
        assert payload.icon == "schedule"
        assert payload.sound == "default"
        assert payload.priority == "high"
        assert payload.play_sound is True
        assert payload.metadata == {
            "alert_id": "alert-1",
            "product_id": "product-1",
            "type": "expiring_soon",
            "scheduled_date": NOW.isoformat(),
        }

    def test_critical_channel(self, composer):
        payload = composer.build_payload(_record(AlertType.EXPIRED))
        assert payload.channel_id == ChannelId.CRITICAL.value
        assert payload.priority == "max"

    def test_missing_visuals_fall_back_to_default(self, composer, settings):
        settings.visual.colors_by_type = {}
        settings.visual.icons_by_type = {}
        settings.sound.sounds_by_type = {}
        payload = composer.build_payload(_record())
        assert (payload.color, payload.icon, payload.sound) == ("default", "default", "default")

    def test_sound_and_vibration_flags(self, composer, settings):
        settings.sound.enable_sound = False
        settings.sound.enable_vibration = False
        settings.visual.enable_badge = False
        payload = composer.build_payload(_record())
        assert payload.play_sound is False
        assert payload.vibrate is False
        assert payload.badge is False

    def test_to_dict(self, composer):
        data = composer.build_payload(_record()).to_dict()
        assert data["channel_id"] == "expiration_high"
        assert data["metadata"]["type"] == "expiring_soon"

    def test_severity_does_not_affect_render(self, composer, make_alert):
        low = composer.render(make_alert(severity=Severity.LOW))
        critical = composer.render(make_alert(severity=Severity.CRITICAL))
        assert low == critical
