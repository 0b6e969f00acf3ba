"""
Tests for draft line item validation
"""

from decimal import Decimal

import pytest

from budget_ledger.models.ledger import Charge, LineItem
from budget_ledger.validation import LineItemValidator


@pytest.fixture
def validator(ledger_settings):
    return LineItemValidator(ledger_settings)


class TestErrors:
    """Issues that block a save."""

    def test_valid_item(self, validator):
        """Test a complete item passes without issues."""
        result = validator.validate([
            LineItem(description="Lift service", amount=Decimal("450"), category="Maintenance")
        ])
        assert result.is_valid
        assert result.issues == []

    def test_missing_name_and_description(self, validator):
        """Test an item needs a name or a description."""
        result = validator.validate([LineItem(amount=Decimal("10"), category="Misc")])
        assert not result.is_valid
        assert [i.issue_type for i in result.issues] == ["missing"]

    def test_item_name_is_enough(self, validator):
        """Test an item name alone satisfies the requirement."""
        result = validator.validate([LineItem(item_name="Bulbs", amount=Decimal("10"), category="Misc")])
        assert result.is_valid

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_amount(self, validator, amount):
        """Test zero and negative amounts are errors."""
        result = validator.validate([LineItem(description="x", amount=amount, category="Misc")])
        assert not result.is_valid
        assert result.issues[0].field == "amount"
        assert result.issues[0].severity == "error"

    @pytest.mark.parametrize("field, limit", [("item_name", 200), ("description", 500), ("category", 100)])
    def test_text_too_long(self, validator, field, limit):
        """Test draft text over the service limits blocks the save."""
        fields = {"description": "Lift", "amount": Decimal("10"), "category": "Misc"}
        fields[field] = "x" * (limit + 1)
        result = validator.validate([LineItem(**fields)])
        assert not result.is_valid
        assert [(i.field, i.issue_type) for i in result.issues if i.severity == "error"] == [(field, "too_long")]

    def test_text_at_limit(self, validator):
        """Test text exactly at the limit passes."""
        result = validator.validate([
            LineItem(description="x" * 500, amount=Decimal("10"), category="Misc")
        ])
        assert result.is_valid

    def test_issues_carry_item_id(self, validator):
        """Test each issue points at its item."""
        good = LineItem(description="ok", amount=Decimal("1"), category="Misc")
        bad = LineItem(description="bad", amount=Decimal("0"), category="Misc")
        result = validator.validate([good, bad])
        assert [i.item_id for i in result.issues] == [bad.id]


class TestWarnings:
    """Issues reported without blocking."""

    def test_amount_above_ceiling(self, validator):
        """Test very large amounts are flagged."""
        result = validator.validate([
            LineItem(description="Roof", amount=Decimal("300000"), category="Capital")
        ])
        assert result.is_valid
        assert result.issues[0].issue_type == "suspicious_value"
        assert "£300,000.00" in result.warnings[0]

    def test_missing_category(self, validator):
        """Test a blank category is a warning only."""
        result = validator.validate([LineItem(description="Bulbs", amount=Decimal("12"))])
        assert result.is_valid
        assert result.issues[0].field == "category"

    def test_charge_breakdown_mismatch(self, validator):
        """Test charges that do not add up are flagged."""
        item = LineItem(
            description="Lift service",
            amount=Decimal("450"),
            category="Maintenance",
            charge_breakdown=[Charge(amount=Decimal("400"))],
        )
        result = validator.validate([item])
        assert result.is_valid
        assert result.issues[0].field == "charge_breakdown"

    def test_summary(self, validator):
        """Test the console summary lists errors then warnings."""
        result = validator.validate([
            LineItem(description="", amount=Decimal("0")),
        ])
        summary = validator.get_user_friendly_summary(result)
        assert summary.startswith("These problems must be fixed before saving:")
        assert "Please double-check:" in summary
        assert validator.get_user_friendly_summary(validator.validate([])) == "All checks passed."


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
