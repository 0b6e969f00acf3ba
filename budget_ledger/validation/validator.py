"""
Draft Line Item Validation

DESIGN DECISION: Validation runs on a month's drafts immediately before
they are saved, and only on drafts. Persisted items were accepted by the
finance service already and are never re-checked.

Two severities:

ERRORS (block the save):
- No item name and no description
- Amount zero or negative
- Name, description or category longer than the finance service accepts

WARNINGS (reported, the save goes ahead):
- Amount above the configured sanity ceiling
- No category (submitted as "Uncategorised")
- Charge breakdown that does not add up to the item amount

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from typing import Optional

from budget_ledger.config import LedgerSettings, get_settings
from budget_ledger.models.ledger import (
    MAX_CATEGORY_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_ITEM_NAME_LENGTH,
    LineItem,
    ValidationIssue,
    ValidationResult,
)


class LineItemValidator:
    """
    Checks draft line items before they are submitted.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _check_required(self, item: LineItem) -> list[ValidationIssue]:
        issues = []

        if not item.item_name and not item.description:
            issues.append(ValidationIssue(
                item_id=item.id,
                field="description",
                issue_type="missing",
                message="Line item needs a name or a description",
                severity="error",
                suggested_fix="Describe what the expense was for",
            ))

        if item.amount <= 0:
            issues.append(ValidationIssue(
                item_id=item.id,
                field="amount",
                issue_type="non_positive",
                message=f"Amount must be greater than zero (got {item.amount})",
                severity="error",
                suggested_fix="Enter the amount that was spent",
            ))

        for field, limit in (
            ("item_name", MAX_ITEM_NAME_LENGTH),
            ("description", MAX_DESCRIPTION_LENGTH),
            ("category", MAX_CATEGORY_LENGTH),
        ):
            length = len(getattr(item, field))
            if length > limit:
                issues.append(ValidationIssue(
                    item_id=item.id,
                    field=field,
                    issue_type="too_long",
                    message=f"{field.replace('_', ' ').capitalize()} is {length} characters (at most {limit})",
                    severity="error",
                    suggested_fix="Shorten the text",
                ))

        return issues

    def _check_plausibility(self, item: LineItem) -> list[ValidationIssue]:
        issues = []
        label = item.display_name or "Line item"
        symbol = self._settings.currency_symbol

        ceiling = self._settings.max_line_item_amount
        if item.amount > ceiling:
            issues.append(ValidationIssue(
                item_id=item.id,
                field="amount",
                issue_type="suspicious_value",
                message=f"{label}: amount ({symbol}{item.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if not item.category:
            issues.append(ValidationIssue(
                item_id=item.id,
                field="category",
                issue_type="missing",
                message=f"{label}: no category, it will be saved as Uncategorised",
                severity="warning",
                suggested_fix="Pick a category for clearer reporting",
            ))

        if item.charge_breakdown:
            charges_total = item.charges_total
            if charges_total != item.amount:
                issues.append(ValidationIssue(
                    item_id=item.id,
                    field="charge_breakdown",
                    issue_type="inconsistent",
                    message=(
                        f"{label}: charges add up to {symbol}{charges_total:,.2f}, "
                        f"not {symbol}{item.amount:,.2f}"
                    ),
                    severity="warning",
                    suggested_fix="Check the charge breakdown against the invoice",
                ))

        return issues

    def validate(self, items: list[LineItem]) -> ValidationResult:
        """
        Validate drafts.

        Args:
            items: The drafts about to be saved

        Returns:
            ValidationResult; `is_valid` is False if any error was found
        """
        issues = []
        for item in items:
            issues.extend(self._check_required(item))
            issues.extend(self._check_plausibility(item))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Summary text for the console.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        errors = [issue for issue in result.issues if issue.severity == "error"]
        if errors:
            lines.append("These problems must be fixed before saving:")
            for issue in errors:
                lines.append(f"  - {issue.message}")

        if result.warnings:
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)
