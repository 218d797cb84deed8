"""Notification Logging Context.

Context variables binding the notification or alert being processed to
every log entry emitted while handling it.
"""

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


_notification_id_var: ContextVar[str] = ContextVar("notification_id", default="")
_alert_id_var: ContextVar[str] = ContextVar("alert_id", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})


def get_notification_id() -> str:
    return _notification_id_var.get()


def get_alert_id() -> str:
    return _alert_id_var.get()


def get_context_dict() -> dict[str, Any]:
    """Get all context variables as a dictionary for log binding."""
    ctx = {}
    notification_id = _notification_id_var.get()
    if notification_id:
        ctx["notification_id"] = notification_id
    alert_id = _alert_id_var.get()
    if alert_id:
        ctx["alert_id"] = alert_id
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@dataclass
class NotificationContext:
    """Context manager binding notification/alert ids to log entries.

    Restores the previous values on exit so contexts can nest.

    Example:
        with NotificationContext(alert_id=alert.id):
            logger.info("evaluating alert")  # includes alert_id
    """

    notification_id: str = ""
    alert_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    _tokens: list = field(default_factory=list, repr=False)

    def __enter__(self) -> "NotificationContext":
        self._tokens = [
            (_notification_id_var, _notification_id_var.set(self.notification_id or get_notification_id())),
            (_alert_id_var, _alert_id_var.set(self.alert_id or get_alert_id())),
            (_extra_context_var, _extra_context_var.set({**_extra_context_var.get(), **self.extra})),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    def bind(self, **kwargs: Any) -> None:
        """Add extra key-value pairs to the context."""
        _extra_context_var.set({**_extra_context_var.get(), **kwargs})
        self.extra.update(kwargs)
