"""
User-facing notifications and structured logging setup.
"""

from budget_ledger.notifications.notifier import (
    NotificationSink,
    Notifier,
    RecordingSink,
)

__all__ = [
    "NotificationSink",
    "Notifier",
    "RecordingSink",
]
