"""
Ledger core: years, budgets, line items, merging and aggregates.
"""

from budget_ledger.ledger.aggregate import AggregateCalculator
from budget_ledger.ledger.budget import BudgetLedger
from budget_ledger.ledger.errors import (
    InvalidYearError,
    ItemImmutableError,
    ItemNotFoundError,
    LedgerError,
    MissingLedgerMappingError,
    NoYearSelectedError,
)
from budget_ledger.ledger.merge import MergeOutcome, MonthlyFetch, MonthlyMergeEngine
from budget_ledger.ledger.months import month_index, validate_month
from budget_ledger.ledger.store import LineItemStore
from budget_ledger.ledger.years import YearRegistry

__all__ = [
    # Components
    "YearRegistry",
    "BudgetLedger",
    "LineItemStore",
    "MonthlyMergeEngine",
    "MergeOutcome",
    "MonthlyFetch",
    "AggregateCalculator",
    # Months
    "month_index",
    "validate_month",
    # Errors
    "LedgerError",
    "InvalidYearError",
    "MissingLedgerMappingError",
    "ItemImmutableError",
    "ItemNotFoundError",
    "NoYearSelectedError",
]
