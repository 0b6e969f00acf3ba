"""
Notifier

DESIGN DECISION: Every user-facing notification is both displayed and
logged. This provides:
1. One place where the engine reports outcomes to the user
2. A structured log trail of everything the user was told

The notifier:
- Is fire-and-forget (the sink returns nothing the engine waits on)
- Gracefully handles failures (a broken sink never aborts an operation)
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from budget_ledger.models.notification import Notification, NotificationSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class NotificationSink(ABC):
    """
    Where notifications are displayed (toasts, a console, a test list).
    """

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """
        Display a notification.

        Must not block. Exceptions raised here are logged by the
        Notifier and otherwise ignored.
        """
        pass


class RecordingSink(NotificationSink):
    """Keeps notifications in memory, for tests and headless runs."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def kinds(self) -> list[str]:
        return [n.kind.value for n in self.notifications]

    def clear(self) -> None:
        self.notifications.clear()


class Notifier:
    """
    Logs each notification and forwards it to the sink.
    """

    def __init__(self, sink: Optional[NotificationSink] = None):
        """
        Args:
            sink: Display backend. If None, notifications are only logged.
        """
        self._sink = sink
        self._logger = structlog.get_logger()

    def notify(self, notification: Notification) -> None:
        log_dict = notification.to_log_dict()

        if notification.severity == NotificationSeverity.ERROR:
            self._logger.error("user_notification", **log_dict)
        elif notification.severity == NotificationSeverity.WARNING:
            self._logger.warning("user_notification", **log_dict)
        else:
            self._logger.info("user_notification", **log_dict)

        if self._sink is None:
            return

        try:
            self._sink.notify(notification)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "notification_sink_failed",
                error=str(e),
                notification_id=str(notification.notification_id),
            )
