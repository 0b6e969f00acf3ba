"""
Notification Models for the Building Ledger

Every failed remote operation and every successful save or update produces
exactly one user-facing notification. These models give each situation its
own kind and its own specific message.

DESIGN DECISION: Notifications are fire-and-forget. The engine never waits
on, or reads anything back from, the sink that displays them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from budget_ledger.models.ledger import MONTH_NAMES


class NotificationKind(str, Enum):
    """Situations the budgeting screen reports to the user."""
    # Years
    YEARS_FROM_CACHE = "years_from_cache"
    YEARS_UNAVAILABLE = "years_unavailable"
    INVALID_YEAR = "invalid_year"
    YEAR_NOT_FOUND = "year_not_found"

    # Annual budget
    BUDGET_CREATED = "budget_created"
    BUDGET_CREATED_OFFLINE = "budget_created_offline"
    BUDGET_FROM_CACHE = "budget_from_cache"
    BUDGET_UNAVAILABLE = "budget_unavailable"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_UPDATE_FAILED = "budget_update_failed"

    # Monthly ledgers
    MONTHS_UNAVAILABLE = "months_unavailable"
    ITEMS_SAVED = "items_saved"
    NOTHING_TO_SAVE = "nothing_to_save"
    SAVE_FAILED = "save_failed"
    SAVE_BLOCKED = "save_blocked"
    MISSING_LEDGER_MAPPING = "missing_ledger_mapping"


class NotificationSeverity(str, Enum):
    """How prominently a notification should be shown."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A single user-facing notification."""

    notification_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the notification was raised (UTC)"
    )
    kind: NotificationKind
    severity: NotificationSeverity = NotificationSeverity.INFO
    message: str = Field(..., max_length=500)

    # Context
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=0, le=11)
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "notification_id": str(self.notification_id),
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "year": self.year,
            "month": self.month,
            "details": self.details,
        }


def _month_label(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month]} {year}"


class NotificationBuilder:
    """
    Helper class to build notifications with their specific wording.

    Usage:
        note = NotificationBuilder.items_saved(2025, 2, count=3)
        note = NotificationBuilder.save_failed(2025, 2, "timeout")
    """

    @staticmethod
    def years_from_cache(years: list[int], error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.YEARS_FROM_CACHE,
            severity=NotificationSeverity.WARNING,
            message=(
                "Could not reach the finance service; showing "
                f"{len(years)} previously loaded year(s)."
            ),
            details={"years": years, "error": error_message},
        )

    @staticmethod
    def years_unavailable(error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.YEARS_UNAVAILABLE,
            severity=NotificationSeverity.ERROR,
            message="Could not load the list of financial years.",
            details={"error": error_message},
        )

    @staticmethod
    def invalid_year(year: int, min_year: int, max_year: int) -> Notification:
        return Notification(
            kind=NotificationKind.INVALID_YEAR,
            severity=NotificationSeverity.ERROR,
            message=f"{year} is not a valid financial year (allowed {min_year}-{max_year}).",
            year=year,
            details={"min_year": min_year, "max_year": max_year},
        )

    @staticmethod
    def year_not_found(year: int) -> Notification:
        return Notification(
            kind=NotificationKind.YEAR_NOT_FOUND,
            severity=NotificationSeverity.WARNING,
            message=f"No budget exists for {year} yet. Add the year to create one.",
            year=year,
        )

    @staticmethod
    def budget_created(year: int, amount: str) -> Notification:
        return Notification(
            kind=NotificationKind.BUDGET_CREATED,
            severity=NotificationSeverity.SUCCESS,
            message=f"Created the {year} budget with {amount}.",
            year=year,
            details={"amount": amount},
        )

    @staticmethod
    def budget_created_offline(year: int, amount: str, error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.BUDGET_CREATED_OFFLINE,
            severity=NotificationSeverity.WARNING,
            message=(
                f"Could not create the {year} budget on the finance service; "
                f"using {amount} locally. Items cannot be saved until it is created."
            ),
            year=year,
            details={"amount": amount, "error": error_message},
        )

    @staticmethod
    def budget_from_cache(year: int, error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.BUDGET_FROM_CACHE,
            severity=NotificationSeverity.WARNING,
            message=f"Could not load the {year} budget; showing the last known figure.",
            year=year,
            details={"error": error_message},
        )

    @staticmethod
    def budget_unavailable(year: int, error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.BUDGET_UNAVAILABLE,
            severity=NotificationSeverity.ERROR,
            message=f"Could not load the {year} budget.",
            year=year,
            details={"error": error_message},
        )

    @staticmethod
    def budget_updated(year: int, amount: str) -> Notification:
        return Notification(
            kind=NotificationKind.BUDGET_UPDATED,
            severity=NotificationSeverity.SUCCESS,
            message=f"The {year} budget is now {amount}.",
            year=year,
            details={"amount": amount},
        )

    @staticmethod
    def budget_update_failed(year: int, error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.BUDGET_UPDATE_FAILED,
            severity=NotificationSeverity.ERROR,
            message=f"Could not update the {year} budget; the previous figure was kept.",
            year=year,
            details={"error": error_message},
        )

    @staticmethod
    def months_unavailable(year: int, error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.MONTHS_UNAVAILABLE,
            severity=NotificationSeverity.WARNING,
            message=(
                f"Could not load monthly spending for {year}; "
                "showing only what this session already holds."
            ),
            year=year,
            details={"error": error_message},
        )

    @staticmethod
    def items_saved(year: int, month: int, count: int) -> Notification:
        noun = "item" if count == 1 else "items"
        return Notification(
            kind=NotificationKind.ITEMS_SAVED,
            severity=NotificationSeverity.SUCCESS,
            message=f"Saved {count} {noun} to {_month_label(year, month)}.",
            year=year,
            month=month,
            details={"count": count},
        )

    @staticmethod
    def nothing_to_save(year: int, month: int) -> Notification:
        return Notification(
            kind=NotificationKind.NOTHING_TO_SAVE,
            severity=NotificationSeverity.INFO,
            message=f"Nothing new to save for {_month_label(year, month)}.",
            year=year,
            month=month,
        )

    @staticmethod
    def save_failed(year: int, month: int, error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.SAVE_FAILED,
            severity=NotificationSeverity.ERROR,
            message=(
                f"Could not save {_month_label(year, month)}; "
                "your draft items are unchanged."
            ),
            year=year,
            month=month,
            details={"error": error_message},
        )

    @staticmethod
    def save_blocked(year: int, month: int, issues: list[dict]) -> Notification:
        return Notification(
            kind=NotificationKind.SAVE_BLOCKED,
            severity=NotificationSeverity.WARNING,
            message=(
                f"{_month_label(year, month)} was not saved: "
                f"{len(issues)} item problem(s) need fixing first."
            ),
            year=year,
            month=month,
            details={"issues": issues},
        )

    @staticmethod
    def missing_ledger_mapping(year: int, month: int) -> Notification:
        return Notification(
            kind=NotificationKind.MISSING_LEDGER_MAPPING,
            severity=NotificationSeverity.ERROR,
            message=(
                f"Cannot save {_month_label(year, month)}: the {year} ledger "
                "is not registered with the finance service."
            ),
            year=year,
            month=month,
        )
