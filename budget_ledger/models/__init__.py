"""
Data Models Package

This package contains all Pydantic models used by the Building Ledger.
All data flowing through the engine must conform to these schemas.
"""

from budget_ledger.models.ledger import (
    MONTH_NAMES,
    AggregateSource,
    AnnualBudget,
    Attachment,
    BudgetAggregate,
    BudgetPlanItem,
    Charge,
    LineItem,
    MonthRecord,
    MonthStatus,
    Provenance,
    SaveResult,
    SaveStatus,
    ValidationIssue,
    ValidationResult,
    YearSelection,
    YearView,
)
from budget_ledger.models.notification import (
    Notification,
    NotificationBuilder,
    NotificationKind,
    NotificationSeverity,
)
from budget_ledger.models.remote import (
    GatewayResult,
    RemoteBudgetSnapshot,
    RemoteItem,
    RemoteMonth,
    RemoteYear,
    ResultStatus,
    SaveItemPayload,
)

__all__ = [
    # Ledger models
    "MONTH_NAMES",
    "AggregateSource",
    "AnnualBudget",
    "Attachment",
    "BudgetAggregate",
    "BudgetPlanItem",
    "Charge",
    "LineItem",
    "MonthRecord",
    "MonthStatus",
    "Provenance",
    "SaveResult",
    "SaveStatus",
    "ValidationIssue",
    "ValidationResult",
    "YearSelection",
    "YearView",
    # Notification models
    "Notification",
    "NotificationBuilder",
    "NotificationKind",
    "NotificationSeverity",
    # Finance service models
    "GatewayResult",
    "RemoteBudgetSnapshot",
    "RemoteItem",
    "RemoteMonth",
    "RemoteYear",
    "ResultStatus",
    "SaveItemPayload",
]
