"""
Shared fixtures.

The finance service is replaced by an in-memory FakeFinanceGateway that
behaves like the real one: it appends saved items, recomputes totals and
can be told to fail or to hold responses back.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from budget_ledger.config import LedgerSettings
from budget_ledger.ledger import (
    AggregateCalculator,
    BudgetLedger,
    LineItemStore,
    MonthlyMergeEngine,
    YearRegistry,
)
from budget_ledger.models.ledger import CENT, MONTH_NAMES
from budget_ledger.models.remote import (
    GatewayResult,
    RemoteBudgetSnapshot,
    RemoteItem,
    RemoteMonth,
    RemoteYear,
    SaveItemPayload,
)
from budget_ledger.notifications import Notifier, RecordingSink
from budget_ledger.orchestrator import FinancialsSession
from budget_ledger.services.cache import SessionCache
from budget_ledger.services.finance import PersistenceGateway


class FakeFinanceGateway(PersistenceGateway):
    """
    In-memory finance service.

    - `fail` holds operation names that should answer UNAVAILABLE:
      "years", "fetch_budget", "create_budget", "update_budget",
      "months", "save"
    - `calls` records (operation, args) for every call
    - `gates` holds an asyncio.Event per year; budget and monthly fetches
      for that year wait on it
    - `budget_gates` holds an asyncio.Event per year that only the budget
      fetch waits on
    """

    def __init__(self):
        self.budgets: dict[int, dict] = {}
        # year -> one-based month number -> items
        self.items: dict[int, dict[int, list[RemoteItem]]] = {}
        self.fail: set[str] = set()
        self.calls: list[tuple] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.budget_gates: dict[int, asyncio.Event] = {}
        self._next_id = 1

    # -------------------------------------------------------------------------
    # Test setup helpers
    # -------------------------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        value = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return value

    def add_year(self, year: int, budget: Decimal = Decimal("100000")) -> str:
        ledger_id = self._new_id("ledger")
        self.budgets[year] = {"id": ledger_id, "total_budget": Decimal(budget)}
        self.items.setdefault(year, {})
        return ledger_id

    def add_remote_item(
        self,
        year: int,
        month_number: int,
        item_name: str,
        amount: Decimal,
        category: str = "Maintenance",
        description: str = "",
    ) -> RemoteItem:
        item = RemoteItem(
            id=self._new_id("item"),
            item_name=item_name,
            description=description or item_name,
            amount=amount,
            category=category,
        )
        self.items.setdefault(year, {}).setdefault(month_number, []).append(item)
        return item

    def add_empty_month(self, year: int, month_number: int) -> None:
        self.items.setdefault(year, {}).setdefault(month_number, [])

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    def total_spent(self, year: int) -> Decimal:
        return sum(
            (item.amount for items in self.items.get(year, {}).values() for item in items),
            Decimal("0.00"),
        )

    def _snapshot(self, year: int) -> RemoteBudgetSnapshot:
        budget = self.budgets[year]["total_budget"]
        spent = self.total_spent(year)
        percentage = Decimal("0") if budget == 0 else (spent / budget * 100).quantize(CENT)
        return RemoteBudgetSnapshot(
            year=year,
            total_budget=budget,
            total_spent=spent,
            remaining_budget=budget - spent,
            percentage_spent=percentage,
            remote_ledger_id=self.budgets[year]["id"],
        )

    async def _wait(self, year: int) -> None:
        gate = self.gates.get(year)
        if gate is not None:
            await gate.wait()

    def _year_for(self, remote_ledger_id: str) -> Optional[int]:
        for year, budget in self.budgets.items():
            if budget["id"] == remote_ledger_id:
                return year
        return None

    # -------------------------------------------------------------------------
    # PersistenceGateway
    # -------------------------------------------------------------------------

    async def fetch_available_years(self) -> GatewayResult[list[RemoteYear]]:
        self.calls.append(("years",))
        if "years" in self.fail:
            return GatewayResult.failure("connection refused")
        return GatewayResult.success([
            RemoteYear(year=year, remote_ledger_id=budget["id"])
            for year, budget in sorted(self.budgets.items())
        ])

    async def fetch_annual_budget(self, year: int) -> GatewayResult[RemoteBudgetSnapshot]:
        self.calls.append(("fetch_budget", year))
        await self._wait(year)
        if year in self.budget_gates:
            await self.budget_gates[year].wait()
        if "fetch_budget" in self.fail:
            return GatewayResult.failure("connection refused")
        if year not in self.budgets:
            return GatewayResult.missing(f"Finance record not found for {year}")
        return GatewayResult.success(self._snapshot(year))

    async def create_annual_budget(
        self,
        year: int,
        default_amount: Decimal,
    ) -> GatewayResult[RemoteBudgetSnapshot]:
        self.calls.append(("create_budget", year, default_amount))
        if "create_budget" in self.fail:
            return GatewayResult.failure("connection refused")
        self.add_year(year, default_amount)
        return GatewayResult.success(self._snapshot(year))

    async def update_annual_budget(
        self,
        year: int,
        new_amount: Decimal,
    ) -> GatewayResult[None]:
        self.calls.append(("update_budget", year, new_amount))
        if "update_budget" in self.fail:
            return GatewayResult.failure("connection refused")
        if year not in self.budgets:
            return GatewayResult.missing(f"Finance record not found for {year}")
        self.budgets[year]["total_budget"] = new_amount
        return GatewayResult.success()

    async def fetch_monthly_finance(self, year: int) -> GatewayResult[list[RemoteMonth]]:
        self.calls.append(("months", year))
        await self._wait(year)
        if "months" in self.fail:
            return GatewayResult.failure("connection refused")
        if year not in self.budgets:
            return GatewayResult.missing(f"Finance record not found for {year}")
        return GatewayResult.success([
            RemoteMonth(
                month_name=MONTH_NAMES[month_number - 1],
                total_spent=sum((i.amount for i in items), Decimal("0.00")),
                items=list(items),
            )
            for month_number, items in sorted(self.items.get(year, {}).items())
        ])

    async def save_batch(
        self,
        remote_ledger_id: str,
        month_number: int,
        items: list[SaveItemPayload],
    ) -> GatewayResult[None]:
        self.calls.append(("save", remote_ledger_id, month_number, list(items)))
        if "save" in self.fail:
            return GatewayResult.failure("connection refused")
        year = self._year_for(remote_ledger_id)
        if year is None:
            return GatewayResult.missing(f"Finance record {remote_ledger_id} not found")
        for payload in items:
            self.add_remote_item(
                year,
                month_number,
                payload.item_name,
                payload.amount,
                category=payload.category,
                description=payload.description,
            )
        return GatewayResult.success()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        min_year=2020,
        max_year=2030,
        default_annual_budget=Decimal("120000"),
        max_line_item_amount=Decimal("250000"),
        session_cache_path=None,
        currency_symbol="£",
    )


@pytest.fixture
def cache() -> SessionCache:
    return SessionCache()


@pytest.fixture
def gateway() -> FakeFinanceGateway:
    return FakeFinanceGateway()


@pytest.fixture
def budget_ledger(gateway, cache, ledger_settings) -> BudgetLedger:
    return BudgetLedger(gateway, cache, ledger_settings)


@pytest.fixture
def registry(gateway, budget_ledger, cache, ledger_settings) -> YearRegistry:
    return YearRegistry(gateway, budget_ledger, cache, ledger_settings)


@pytest.fixture
def store(gateway, registry, cache) -> LineItemStore:
    return LineItemStore(gateway, registry, cache)


@pytest.fixture
def merge_engine(gateway, store) -> MonthlyMergeEngine:
    return MonthlyMergeEngine(gateway, store)


@pytest.fixture
def calculator(budget_ledger, store) -> AggregateCalculator:
    return AggregateCalculator(budget_ledger, store)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def session(gateway, cache, sink, ledger_settings) -> FinancialsSession:
    return FinancialsSession(
        gateway=gateway,
        cache=cache,
        notifier=Notifier(sink),
        settings=ledger_settings,
    )
