"""
Aggregate Calculator

Derives the budget-vs-spend summary of a year on demand.

DESIGN DECISION: Aggregates are pulled, never pushed. Nothing caches a
computed aggregate, so a read after any store mutation or budget refresh
always reflects the latest state.

SOURCE ORDER:
1. The figures the finance service returned with the last successful
   budget fetch (it may know about spending this session has not loaded)
2. Otherwise a local sum over every item the store holds, drafts included
"""

from decimal import Decimal

import structlog

from budget_ledger.ledger.budget import BudgetLedger
from budget_ledger.ledger.store import UNCATEGORISED, LineItemStore
from budget_ledger.models.ledger import (
    MONTH_NAMES,
    AggregateSource,
    BudgetAggregate,
    CENT,
)


class AggregateCalculator:
    """Budget totals and spending breakdowns for a year."""

    def __init__(
        self,
        budget_ledger: BudgetLedger,
        store: LineItemStore,
    ):
        self._budget_ledger = budget_ledger
        self._store = store
        self._logger = structlog.get_logger()

    def compute_for_year(self, year: int) -> BudgetAggregate:
        """
        Total budget, total spent, remaining and percentage spent.

        A year without a known budget counts as a zero budget; the
        percentage is then 0 rather than a division error.
        """
        remote = self._budget_ledger.remote_aggregate(year)
        if remote is not None:
            return remote

        budget = self._budget_ledger.current(year)
        total_budget = budget.total_budget if budget else Decimal("0.00")
        aggregate = BudgetAggregate.from_totals(
            year,
            total_budget,
            self._store.total_spent(year),
            AggregateSource.LOCAL,
        )
        self._logger.debug(
            "aggregate_computed_locally",
            year=year,
            total_spent=str(aggregate.total_spent),
        )
        return aggregate

    def month_totals(self, year: int) -> dict[str, Decimal]:
        """Spend per month, January first."""
        return {
            MONTH_NAMES[record.month]: record.total
            for record in self._store.month_records(year)
        }

    def monthly_average(self, year: int) -> Decimal:
        """Average spend over the months that have any spending."""
        totals = [total for total in self.month_totals(year).values() if total > 0]
        if not totals:
            return Decimal("0.00")
        return (sum(totals, Decimal("0.00")) / len(totals)).quantize(CENT)

    def category_totals(self, year: int) -> dict[str, Decimal]:
        """Spend per category, largest first."""
        totals: dict[str, Decimal] = {}
        for record in self._store.month_records(year):
            for item in record.line_items:
                category = item.category or UNCATEGORISED
                totals[category] = totals.get(category, Decimal("0.00")) + item.amount
        return dict(sorted(totals.items(), key=lambda entry: entry[1], reverse=True))
