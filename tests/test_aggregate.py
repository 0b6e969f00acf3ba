"""
Tests for the aggregate calculator
"""

from decimal import Decimal

import pytest

from budget_ledger.models.ledger import AggregateSource


class TestComputeForYear:
    """Tests for compute_for_year."""

    @pytest.mark.anyio
    async def test_prefers_remote_aggregate(self, calculator, budget_ledger, store, gateway):
        """Test the service's figures are trusted as-is."""
        gateway.add_year(2025, Decimal("100000"))
        # Spending this session has not loaded
        gateway.add_remote_item(2025, 1, "Other user's save", Decimal("5000"))
        await budget_ledger.fetch(2025)

        aggregate = calculator.compute_for_year(2025)

        assert aggregate.source == AggregateSource.REMOTE
        assert aggregate.total_spent == Decimal("5000.00")
        assert store.total_spent(2025) == Decimal("0.00")

    @pytest.mark.anyio
    async def test_local_fallback_sums_store(self, calculator, budget_ledger, store, gateway):
        """Test a failed budget fetch falls back to summing every known item."""
        gateway.add_year(2025, Decimal("1000"))
        await budget_ledger.fetch(2025)
        store.add_draft_item(2025, 0, description="Bulbs", amount=Decimal("100"))
        store.add_draft_item(2025, 11, description="Salt", amount=Decimal("150"))
        gateway.fail.add("fetch_budget")
        await budget_ledger.fetch(2025)

        aggregate = calculator.compute_for_year(2025)

        assert aggregate.source == AggregateSource.LOCAL
        assert aggregate.total_budget == Decimal("1000.00")
        assert aggregate.total_spent == Decimal("250.00")
        assert aggregate.remaining_budget == Decimal("750.00")
        assert aggregate.percentage_spent == Decimal("25.00")

    def test_no_budget_counts_as_zero(self, calculator, store):
        """Test an unknown budget gives 0 percent, not a division error."""
        store.add_draft_item(2025, 3, description="Paint", amount=Decimal("80"))

        aggregate = calculator.compute_for_year(2025)

        assert aggregate.total_budget == Decimal("0.00")
        assert aggregate.total_spent == Decimal("80.00")
        assert aggregate.remaining_budget == Decimal("-80.00")
        assert aggregate.percentage_spent == Decimal("0.00")

    def test_pull_based(self, calculator, store):
        """Test every read reflects the latest store state."""
        assert calculator.compute_for_year(2025).total_spent == Decimal("0.00")
        item = store.add_draft_item(2025, 3, description="Paint", amount=Decimal("80"))
        assert calculator.compute_for_year(2025).total_spent == Decimal("80.00")
        store.remove_item(2025, 3, item.id)
        assert calculator.compute_for_year(2025).total_spent == Decimal("0.00")


class TestReporting:
    """Tests for the monthly breakdowns."""

    def test_month_totals(self, calculator, store):
        """Test totals per month, January first."""
        store.add_draft_item(2025, 2, description="Lift", amount=Decimal("450"))
        store.add_draft_item(2025, 2, description="Cleaning", amount=Decimal("50"))

        totals = calculator.month_totals(2025)

        assert list(totals)[0] == "January"
        assert totals["March"] == Decimal("500.00")
        assert totals["April"] == Decimal("0.00")

    def test_monthly_average_over_spending_months(self, calculator, store):
        """Test months without spending are not averaged in."""
        store.add_draft_item(2025, 0, description="A", amount=Decimal("100"))
        store.add_draft_item(2025, 5, description="B", amount=Decimal("200"))

        assert calculator.monthly_average(2025) == Decimal("150.00")
        assert calculator.monthly_average(2026) == Decimal("0.00")

    def test_category_totals(self, calculator, store):
        """Test spend per category, largest first, blanks as Uncategorised."""
        store.add_draft_item(2025, 0, description="A", amount=Decimal("100"), category="Cleaning")
        store.add_draft_item(2025, 1, description="B", amount=Decimal("300"), category="Maintenance")
        store.add_draft_item(2025, 2, description="C", amount=Decimal("50"), category="Cleaning")
        store.add_draft_item(2025, 3, description="D", amount=Decimal("10"))

        totals = calculator.category_totals(2025)

        assert list(totals) == ["Maintenance", "Cleaning", "Uncategorised"]
        assert totals["Cleaning"] == Decimal("150.00")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
