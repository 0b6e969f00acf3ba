"""
Main Orchestrator for the Building Ledger

This module ties together all the components and defines the
end-to-end flows of the budgeting screen:
1. Year selection (validate → resolve/create → fetch budget + months → merge)
2. Drafting (add/edit/remove items, attachments, charge breakdowns)
3. Saving (validate drafts → partial save → refresh the budget aggregates)
4. Budget update

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing year-scoped happens before the user has picked a year
- A load that was superseded by a newer selection is discarded whole
- Every failed remote operation and every save or update is reported to
  the user exactly once

Components only log; all user-facing notifications are raised here.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import structlog

from budget_ledger.config import LedgerSettings, get_settings
from budget_ledger.ledger import (
    AggregateCalculator,
    BudgetLedger,
    InvalidYearError,
    LineItemStore,
    MissingLedgerMappingError,
    MonthlyMergeEngine,
    NoYearSelectedError,
    YearRegistry,
)
from budget_ledger.models.ledger import (
    AnnualBudget,
    Attachment,
    BudgetAggregate,
    BudgetPlanItem,
    Charge,
    LineItem,
    MonthRecord,
    SaveResult,
    SaveStatus,
    YearView,
)
from budget_ledger.models.notification import NotificationBuilder
from budget_ledger.models.remote import GatewayResult
from budget_ledger.notifications import NotificationSink, Notifier
from budget_ledger.services.cache import SessionCache
from budget_ledger.services.finance import (
    FinanceServiceClient,
    HttpFinanceGateway,
    PersistenceGateway,
)
from budget_ledger.validation import LineItemValidator


class FinancialsSession:
    """
    One user's budgeting session.

    Flow:
    1. list_years → show what exists (never auto-select)
    2. select_year / add_year → load the year's budget and months
    3. add_item / edit_item / remove_item → drafts only
    4. save_month → submit the month's drafts
    5. update_budget → change the annual figure

    Aggregates are read on demand via `aggregate()`.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        cache: Optional[SessionCache] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[LineItemValidator] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._cache = cache or SessionCache()
        self._notifier = notifier or Notifier()
        self._validator = validator or LineItemValidator(self._settings)
        self._logger = structlog.get_logger()

        self._budget_ledger = BudgetLedger(gateway, self._cache, self._settings)
        self._registry = YearRegistry(gateway, self._budget_ledger, self._cache, self._settings)
        self._store = LineItemStore(gateway, self._registry, self._cache)
        self._merge = MonthlyMergeEngine(gateway, self._store)
        self._calculator = AggregateCalculator(self._budget_ledger, self._store)

        self._selected_year: Optional[int] = None
        self._generation = 0

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    @property
    def selected_year(self) -> Optional[int]:
        return self._selected_year

    @property
    def registry(self) -> YearRegistry:
        return self._registry

    @property
    def budget_ledger(self) -> BudgetLedger:
        return self._budget_ledger

    @property
    def store(self) -> LineItemStore:
        return self._store

    @property
    def merge_engine(self) -> MonthlyMergeEngine:
        return self._merge

    @property
    def calculator(self) -> AggregateCalculator:
        return self._calculator

    def _require_year(self) -> int:
        if self._selected_year is None:
            raise NoYearSelectedError("Select a financial year first")
        return self._selected_year

    def _money(self, amount: Decimal) -> str:
        return f"{self._settings.currency_symbol}{amount:,.2f}"

    # -------------------------------------------------------------------------
    # Years
    # -------------------------------------------------------------------------

    async def list_years(self) -> list[int]:
        """Years the user can pick from. Never selects one."""
        result = await self._registry.list_available_years()

        if not result.ok:
            if result.from_cache:
                self._notifier.notify(
                    NotificationBuilder.years_from_cache(result.data, result.error_message)
                )
            else:
                self._notifier.notify(
                    NotificationBuilder.years_unavailable(result.error_message)
                )

        return result.data or []

    async def select_year(
        self,
        year: int,
        create_if_missing: bool = False,
    ) -> Optional[YearView]:
        """
        Select a year and load its budget and months.

        The budget fetch and the monthly fetch run concurrently. If another
        selection starts before both finish, this load is discarded: nothing
        is written to the store and `selected_year` keeps its last committed
        value. The selection changes only when a load commits.

        Raises:
            InvalidYearError: If the year is out of range (nothing is fetched)

        Returns:
            The loaded year; None if the year has no budget and creation was
            not requested, or if the load was superseded
        """
        try:
            self._registry.validate_year(year)
        except InvalidYearError as e:
            self._notifier.notify(
                NotificationBuilder.invalid_year(e.year, e.min_year, e.max_year)
            )
            raise

        self._generation += 1
        generation = self._generation

        resolved = await self._registry.select_year(year, create_if_missing)
        if generation != self._generation:
            self._logger.info("stale_load_discarded", year=year, stage="resolve")
            return None

        if resolved.is_not_found:
            self._notifier.notify(NotificationBuilder.year_not_found(year))
            return None

        created_offline = False
        if resolved.data is not None and resolved.data.created:
            budget = self._budget_ledger.current(year)
            amount = self._money(budget.total_budget) if budget else ""
            if resolved.ok:
                self._notifier.notify(NotificationBuilder.budget_created(year, amount))
            else:
                created_offline = True
                self._notifier.notify(
                    NotificationBuilder.budget_created_offline(year, amount, resolved.error_message)
                )

        fetched, months = await asyncio.gather(
            self._budget_ledger.fetch(year),
            self._merge.fetch_months(year),
        )
        if generation != self._generation:
            self._logger.info("stale_load_discarded", year=year, stage="load")
            return None

        # Merge against the store as it is now, not as it was when the
        # monthly fetch returned.
        outcome = self._merge.reconcile(months)
        self._store.replace_year(year, outcome.records)
        self._selected_year = year

        if not fetched.ok and not created_offline:
            self._notify_budget_fetch_failed(year, fetched)
        if not outcome.remote_available:
            self._notifier.notify(
                NotificationBuilder.months_unavailable(year, outcome.error_message)
            )

        return YearView(
            year=year,
            budget=self._budget_ledger.current(year),
            months=self._store.month_records(year),
            aggregate=self._calculator.compute_for_year(year),
            months_from_remote=outcome.remote_available,
        )

    async def add_year(self, year: int) -> Optional[YearView]:
        """Select a year, creating its budget with the default amount if absent."""
        return await self.select_year(year, create_if_missing=True)

    def _notify_budget_fetch_failed(
        self,
        year: int,
        fetched: GatewayResult[AnnualBudget],
    ) -> None:
        if fetched.is_not_found:
            self._notifier.notify(NotificationBuilder.year_not_found(year))
        elif fetched.data is not None:
            self._notifier.notify(
                NotificationBuilder.budget_from_cache(year, fetched.error_message)
            )
        else:
            self._notifier.notify(
                NotificationBuilder.budget_unavailable(year, fetched.error_message)
            )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def aggregate(self) -> BudgetAggregate:
        return self._calculator.compute_for_year(self._require_year())

    def month_records(self) -> list[MonthRecord]:
        return self._store.month_records(self._require_year())

    def month(self, month: int) -> MonthRecord:
        return self._store.month(self._require_year(), month)

    def budget(self) -> Optional[AnnualBudget]:
        return self._budget_ledger.current(self._require_year())

    # -------------------------------------------------------------------------
    # Drafting
    # -------------------------------------------------------------------------

    def add_item(
        self,
        month: int,
        item_name: str = "",
        description: str = "",
        amount: Decimal = Decimal("0"),
        category: str = "",
    ) -> LineItem:
        return self._store.add_draft_item(
            self._require_year(),
            month,
            item_name=item_name,
            description=description,
            amount=amount,
            category=category,
        )

    def edit_item(self, month: int, item_id: str, **fields) -> LineItem:
        return self._store.edit_item(self._require_year(), month, item_id, **fields)

    def remove_item(self, month: int, item_id: str) -> None:
        self._store.remove_item(self._require_year(), month, item_id)

    def add_attachment(self, month: int, item_id: str, attachment: Attachment) -> LineItem:
        return self._store.add_attachment(self._require_year(), month, item_id, attachment)

    def remove_attachment(self, month: int, item_id: str, file_name: str) -> LineItem:
        return self._store.remove_attachment(self._require_year(), month, item_id, file_name)

    def set_charge_breakdown(
        self,
        month: int,
        item_id: str,
        charges: Optional[list[Charge]],
    ) -> LineItem:
        return self._store.set_charge_breakdown(self._require_year(), month, item_id, charges)

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    async def save_month(self, month: int) -> SaveResult:
        """
        Save the month's drafts.

        Flow:
        1. Fail loudly if the year has no remote ledger
        2. Validate the drafts; errors block the save (no remote call)
        3. Submit only the drafts
        4. On success, refetch the budget so the service's aggregates
           include the new items

        Raises:
            MissingLedgerMappingError: If the year has no remote ledger id
        """
        year = self._require_year()

        if self._registry.resolve_ledger_id(year) is None:
            self._notifier.notify(NotificationBuilder.missing_ledger_mapping(year, month))
            raise MissingLedgerMappingError(year)

        drafts = self._store.month(year, month).draft_items
        validation = self._validator.validate(drafts)
        if not validation.is_valid:
            errors = [
                issue.model_dump(mode="json")
                for issue in validation.issues
                if issue.severity == "error"
            ]
            self._notifier.notify(NotificationBuilder.save_blocked(year, month, errors))
            return SaveResult(
                year=year,
                month=month,
                status=SaveStatus.INVALID,
                validation=validation,
            )

        try:
            result = await self._store.save_new_items(year, month)
        except MissingLedgerMappingError:
            self._notifier.notify(NotificationBuilder.missing_ledger_mapping(year, month))
            raise

        if result.status == SaveStatus.NO_OP:
            self._notifier.notify(NotificationBuilder.nothing_to_save(year, month))
        elif result.status == SaveStatus.FAILED:
            self._notifier.notify(
                NotificationBuilder.save_failed(year, month, result.error_message)
            )
        else:
            self._notifier.notify(
                NotificationBuilder.items_saved(year, month, result.saved_count)
            )
            refreshed = await self._budget_ledger.fetch(year)
            if not refreshed.ok:
                self._notify_budget_fetch_failed(year, refreshed)

        return result.model_copy(update={"validation": validation})

    # -------------------------------------------------------------------------
    # Budget
    # -------------------------------------------------------------------------

    async def update_budget(self, amount: Decimal) -> GatewayResult[AnnualBudget]:
        """
        Change the selected year's annual budget.

        Raises:
            ValueError: If the amount is negative or not a number
        """
        year = self._require_year()
        result = await self._budget_ledger.update(year, amount)

        if result.ok:
            self._notifier.notify(
                NotificationBuilder.budget_updated(year, self._money(result.data.total_budget))
            )
        else:
            self._notifier.notify(
                NotificationBuilder.budget_update_failed(year, result.error_message)
            )
        return result

    # -------------------------------------------------------------------------
    # Budget plan (local only)
    # -------------------------------------------------------------------------

    def plan_items(self) -> list[BudgetPlanItem]:
        return self._budget_ledger.plan_items(self._require_year())

    def add_plan_item(
        self,
        description: str = "",
        amount: Decimal = Decimal("0"),
    ) -> BudgetPlanItem:
        return self._budget_ledger.add_plan_item(self._require_year(), description, amount)

    def update_plan_item(self, item_id: str, **fields) -> BudgetPlanItem:
        return self._budget_ledger.update_plan_item(self._require_year(), item_id, **fields)

    def remove_plan_item(self, item_id: str) -> bool:
        return self._budget_ledger.remove_plan_item(self._require_year(), item_id)

    def plan_total(self) -> Decimal:
        return self._budget_ledger.plan_total(self._require_year())


def create_app_components(
    sink: Optional[NotificationSink] = None,
) -> FinancialsSession:
    """
    Factory function to create a session against the configured finance
    service.

    Args:
        sink: Where notifications are displayed. If None, they are only
              logged.
    """
    settings = get_settings()

    cache = SessionCache(settings.ledger.session_cache_path)
    gateway = HttpFinanceGateway(FinanceServiceClient(settings.finance_service))

    return FinancialsSession(
        gateway=gateway,
        cache=cache,
        notifier=Notifier(sink),
        settings=settings.ledger,
    )
