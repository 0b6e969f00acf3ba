"""
Budget Ledger

Owns the single annual budget figure of each fiscal year, together with
the aggregates the finance service computed for it.

FAILURE POLICY:
- A failed remote call keeps the previously known value and reports the
  failure to the caller
- A budget value is never fabricated, except on the explicit
  "no remote entry, create with default" path
- When even creation fails, the default is kept locally as an offline
  budget with no remote ledger id, so saving stays impossible
"""

from decimal import Decimal
from typing import Optional

import structlog
from pydantic import ValidationError

from budget_ledger.config import LedgerSettings, get_settings
from budget_ledger.ledger.errors import ItemNotFoundError
from budget_ledger.models.ledger import (
    AggregateSource,
    AnnualBudget,
    BudgetAggregate,
    BudgetPlanItem,
    to_money,
)
from budget_ledger.models.remote import GatewayResult, RemoteBudgetSnapshot
from budget_ledger.services.cache import SessionCache
from budget_ledger.services.finance import PersistenceGateway


BUDGETS_KEY = "financials_budget_by_year"
PLAN_ITEMS_KEY = "financials_budget_line_items_by_year"

PLAN_ITEM_FIELDS = {"description", "amount"}


class BudgetLedger:
    """
    Annual budget per year: fetch, create-with-default, update.

    Also keeps the year's planned allocations (local only).
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        cache: Optional[SessionCache] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._gateway = gateway
        self._cache = cache or SessionCache()
        self._settings = settings or get_settings().ledger
        self._logger = structlog.get_logger()

        self._budgets: dict[int, AnnualBudget] = self._load_budgets()
        self._plans: dict[int, list[BudgetPlanItem]] = self._load_plans()
        self._remote_aggregates: dict[int, BudgetAggregate] = {}

    # -------------------------------------------------------------------------
    # Cache lifecycle
    # -------------------------------------------------------------------------

    def _load_budgets(self) -> dict[int, AnnualBudget]:
        budgets = {}
        for key, value in self._cache.get(BUDGETS_KEY, {}).items():
            try:
                budgets[int(key)] = AnnualBudget.model_validate(value)
            except (ValueError, ValidationError):
                self._logger.warning("cached_budget_skipped", year=key)
        return budgets

    def _load_plans(self) -> dict[int, list[BudgetPlanItem]]:
        plans = {}
        for key, values in self._cache.get(PLAN_ITEMS_KEY, {}).items():
            try:
                plans[int(key)] = [BudgetPlanItem.model_validate(v) for v in values]
            except (ValueError, ValidationError):
                self._logger.warning("cached_plan_skipped", year=key)
        return plans

    def _persist_budgets(self) -> None:
        self._cache.set(
            BUDGETS_KEY,
            {str(year): b.model_dump(mode="json") for year, b in self._budgets.items()},
        )

    def _persist_plans(self) -> None:
        self._cache.set(
            PLAN_ITEMS_KEY,
            {
                str(year): [item.model_dump(mode="json") for item in items]
                for year, items in self._plans.items()
            },
        )

    def _remember(
        self,
        year: int,
        total_budget: Decimal,
        remote_ledger_id: Optional[str],
    ) -> AnnualBudget:
        budget = AnnualBudget(
            year=year,
            total_budget=total_budget,
            remote_ledger_id=remote_ledger_id,
        )
        self._budgets[year] = budget
        self._persist_budgets()
        return budget

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def current(self, year: int) -> Optional[AnnualBudget]:
        """Last known budget for the year, remote or cached."""
        return self._budgets.get(year)

    def remote_aggregate(self, year: int) -> Optional[BudgetAggregate]:
        """
        Aggregate computed by the finance service on the last successful
        fetch, or None if the last fetch failed.
        """
        return self._remote_aggregates.get(year)

    # -------------------------------------------------------------------------
    # Remote operations
    # -------------------------------------------------------------------------

    async def fetch(self, year: int) -> GatewayResult[AnnualBudget]:
        """
        Fetch the year's budget and its server-side aggregates.

        Returns:
            OK with the budget; NOT_FOUND if the year has no budget remotely;
            UNAVAILABLE with the cached budget (if any) as `data`
        """
        result = await self._gateway.fetch_annual_budget(year)

        if result.ok:
            snapshot = result.data
            ledger_id = snapshot.remote_ledger_id
            if ledger_id is None and year in self._budgets:
                ledger_id = self._budgets[year].remote_ledger_id
            budget = self._remember(year, snapshot.total_budget, ledger_id)
            self._remote_aggregates[year] = self._aggregate_from(year, snapshot)
            return GatewayResult.success(budget)

        self._remote_aggregates.pop(year, None)

        if result.is_not_found:
            return GatewayResult.missing(result.error_message or f"No budget for {year}")

        cached = self._budgets.get(year)
        self._logger.warning(
            "budget_from_cache" if cached else "budget_unavailable",
            year=year,
            error=result.error_message,
        )
        return GatewayResult.failure(result.error_message or "Finance service unavailable", fallback=cached)

    async def create_with_default(
        self,
        year: int,
        default_amount: Optional[Decimal] = None,
    ) -> GatewayResult[AnnualBudget]:
        """
        Create the year's budget remotely.

        NOT idempotent - callers must check `fetch` returned NOT_FOUND first.
        If the finance service cannot be reached, an offline budget with the
        default amount is kept locally and returned as the fallback.
        """
        amount = to_money(
            self._settings.default_annual_budget if default_amount is None else default_amount
        )
        result = await self._gateway.create_annual_budget(year, amount)

        if result.ok:
            snapshot = result.data
            budget = self._remember(year, snapshot.total_budget, snapshot.remote_ledger_id)
            self._remote_aggregates[year] = self._aggregate_from(year, snapshot)
            self._logger.info(
                "budget_created",
                year=year,
                amount=str(budget.total_budget),
                remote_ledger_id=budget.remote_ledger_id,
            )
            return GatewayResult.success(budget)

        offline = self._remember(year, amount, None)
        self._remote_aggregates.pop(year, None)
        self._logger.warning(
            "budget_created_offline",
            year=year,
            amount=str(amount),
            error=result.error_message,
        )
        return GatewayResult.failure(
            result.error_message or "Finance service unavailable",
            fallback=offline,
        )

    async def update(self, year: int, new_amount: Decimal) -> GatewayResult[AnnualBudget]:
        """
        Replace the year's budget figure.

        On success the server-side aggregates are refetched, since the
        percentage spent depends on the budget. On failure the previous
        figure is kept.
        """
        amount = to_money(new_amount)
        if amount < 0:
            raise ValueError(f"Budget cannot be negative: {amount}")

        previous = self._budgets.get(year)
        result = await self._gateway.update_annual_budget(year, amount)

        if not result.ok:
            self._logger.warning(
                "budget_update_failed",
                year=year,
                amount=str(amount),
                error=result.error_message,
            )
            return GatewayResult(
                status=result.status,
                data=previous,
                error_message=result.error_message,
                from_cache=previous is not None,
            )

        self._remember(
            year,
            amount,
            previous.remote_ledger_id if previous else None,
        )
        self._remote_aggregates.pop(year, None)
        await self.fetch(year)
        return GatewayResult.success(self._budgets[year])

    @staticmethod
    def _aggregate_from(year: int, snapshot: RemoteBudgetSnapshot) -> BudgetAggregate:
        """Take the service's figures as-is; derive only what it left out."""
        aggregate = BudgetAggregate.from_totals(
            year,
            snapshot.total_budget,
            snapshot.total_spent,
            AggregateSource.REMOTE,
        )
        updates = {}
        if snapshot.remaining_budget is not None:
            updates["remaining_budget"] = snapshot.remaining_budget
        if snapshot.percentage_spent is not None:
            updates["percentage_spent"] = snapshot.percentage_spent
        return aggregate.model_copy(update=updates)

    # -------------------------------------------------------------------------
    # Budget plan (local only)
    # -------------------------------------------------------------------------

    def plan_items(self, year: int) -> list[BudgetPlanItem]:
        return [item.model_copy() for item in self._plans.get(year, [])]

    def add_plan_item(
        self,
        year: int,
        description: str = "",
        amount: Decimal = Decimal("0"),
    ) -> BudgetPlanItem:
        item = BudgetPlanItem(description=description, amount=amount)
        self._plans.setdefault(year, []).append(item)
        self._persist_plans()
        return item.model_copy()

    def update_plan_item(self, year: int, item_id: str, **fields) -> BudgetPlanItem:
        unknown = set(fields) - PLAN_ITEM_FIELDS
        if unknown:
            raise ValueError(f"Cannot update plan item field(s): {sorted(unknown)}")

        for index, item in enumerate(self._plans.get(year, [])):
            if item.id == item_id:
                updated = BudgetPlanItem.model_validate({**item.model_dump(), **fields})
                self._plans[year][index] = updated
                self._persist_plans()
                return updated.model_copy()
        raise ItemNotFoundError(f"No plan item {item_id} in {year}")

    def remove_plan_item(self, year: int, item_id: str) -> bool:
        items = self._plans.get(year, [])
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        self._plans[year] = remaining
        self._persist_plans()
        return True

    def plan_total(self, year: int) -> Decimal:
        return sum(
            (item.amount for item in self._plans.get(year, [])),
            Decimal("0.00"),
        )
