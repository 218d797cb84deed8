"""Pytest configuration and shared fixtures."""

import sys
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional

import pytest
import pytest_asyncio

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pantry_alerts.notifications import (  # noqa: E402
    Alert,
    AlertType,
    ChannelSpec,
    InMemoryStore,
    NotificationEngine,
    NotificationPayload,
    Product,
    Severity,
    SuggestedAction,
)

# Wednesday, noon UTC
START = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════


@dataclass
class FakeTimer:
    when: datetime
    callback: Callable[[], Awaitable[None]]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Virtual clock that doubles as the task scheduler.

    Timers only fire from ``advance()``, in due order.
    """

    def __init__(self, start: datetime = START):
        self._now = start
        self.timers: list[FakeTimer] = []

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def call_later(self, delay_seconds: float, callback) -> FakeTimer:
        timer = FakeTimer(self._now + timedelta(seconds=delay_seconds), callback)
        self.timers.append(timer)
        return timer

    @property
    def pending_timers(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    async def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        target = self._now + timedelta(minutes=minutes, seconds=seconds)
        while True:
            due = sorted(
                (t for t in self.pending_timers if t.when <= target),
                key=lambda t: t.when,
            )
            if not due:
                break
            timer = due[0]
            self._now = max(self._now, timer.when)
            timer.fired = True
            await timer.callback()
        self._now = target


class RecordingPlatform:
    """Notification platform that records every call."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[NotificationPayload, datetime]] = []
        self.cancelled: list[str] = []
        self.cancel_all_calls = 0
        self.channels: list[ChannelSpec] = []
        self.fail_schedule = False
        self.fail_channels = False

    async def schedule_at(self, payload: NotificationPayload, when: datetime) -> None:
        if self.fail_schedule:
            raise RuntimeError("platform unavailable")
        self.scheduled.append((payload, when))

    async def cancel(self, notification_id: str) -> None:
        self.cancelled.append(notification_id)

    async def cancel_all(self) -> None:
        self.cancel_all_calls += 1

    async def create_channel(self, spec: ChannelSpec) -> bool:
        if self.fail_channels:
            raise RuntimeError("channel rejected")
        self.channels.append(spec)
        return True

    @property
    def payloads(self) -> list[NotificationPayload]:
        return [payload for payload, _ in self.scheduled]


class RecordingNavigator:
    """Navigator and consumption tracker that records every call."""

    def __init__(self) -> None:
        self.product_details: list[str] = []
        self.overview_count = 0
        self.consumed: list[str] = []

    def open_product_detail(self, product_id: str) -> None:
        self.product_details.append(product_id)

    def open_overview(self) -> None:
        self.overview_count += 1

    async def mark_consumed(self, product_id: str) -> None:
        self.consumed.append(product_id)


class FailingStore:
    """Key-value store whose every call fails."""

    async def get(self, key):
        raise RuntimeError("storage offline")

    async def set(self, key, value):
        raise RuntimeError("storage offline")


def build_alert(
    alert_id: str = "alert-1",
    name: str = "Milk",
    category: str = "dairy",
    alert_type: AlertType = AlertType.EXPIRING_SOON,
    severity: Severity = Severity.MEDIUM,
    days: int = 2,
    location: str = "",
    expiration_date: Optional[date] = None,
    suggested_actions: tuple = (),
    product_id: Optional[str] = None,
) -> Alert:
    product_id = product_id if product_id is not None else f"product-{alert_id}"
    return Alert(
        id=alert_id,
        product_id=product_id,
        product=Product(
            id=product_id,
            name=name,
            category=category,
            location=location,
            expiration_date=expiration_date,
            quantity=1,
            unit="l",
        ),
        alert_type=alert_type,
        severity=severity,
        days_until_expiration=days,
        suggested_actions=suggested_actions,
    )


# ═══════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def platform():
    return RecordingPlatform()


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def make_alert():
    """Factory for alerts; every argument has a sensible default."""
    return build_alert


@pytest.fixture
def cook_today():
    return SuggestedAction(type="cook", title="Cook today", priority=1)


@pytest_asyncio.fixture
async def make_engine(clock, platform, navigator, store):
    """Factory for initialized engines sharing the test's fakes.

    ``settings`` is applied through ``update_settings``.
    """

    async def _make(settings: Optional[dict] = None, **overrides) -> NotificationEngine:
        kwargs = dict(
            platform=platform,
            store=store,
            clock=clock,
            scheduler=clock,
            navigator=navigator,
            consumption=navigator,
        )
        kwargs.update(overrides)
        engine = NotificationEngine(**kwargs)
        await engine.initialize()
        if settings:
            await engine.update_settings(settings)
        return engine

    return _make


@pytest_asyncio.fixture
async def engine(make_engine):
    """Initialized engine with batching disabled."""
    return await make_engine({"batching": {"enabled": False}})
