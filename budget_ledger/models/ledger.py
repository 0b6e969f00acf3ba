"""
Core Data Models for the Building Ledger

These models define the strict schemas for the annual budget, the twelve
monthly ledgers of a fiscal year and their line items. They are designed to:
1. Enforce type safety at runtime
2. Make provenance an explicit field, never a property of an identifier
3. Be serializable for the session cache and for logging

DESIGN DECISION: Month positions are stored zero-based (0 = January).
The one-based month number exists only at the finance service boundary
and is exposed through `MonthRecord.month_number`.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

CENT = Decimal("0.01")

# Limits for text the user types into a draft. Persisted items are taken
# as the finance service stored them.
MAX_ITEM_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500
MAX_CATEGORY_LENGTH = 100


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a two-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Not a valid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return amount.quantize(CENT)


def new_item_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Provenance(str, Enum):
    """
    Where a line item came from and whether it has been persisted.

    CRITICAL: Only NEW items are editable and only NEW items are ever
    submitted to the finance service. The NEW -> SAVED_LOCAL transition
    happens exactly once, after a successful save, and never reverts.
    """
    NEW = "new"                           # Drafted this session, never sent
    SAVED_LOCAL = "saved_local"           # Drafted here, then saved
    PERSISTED_REMOTE = "persisted_remote"  # Came from the finance service


class MonthStatus(str, Enum):
    """Whether anything in a month has been confirmed persisted."""
    DRAFT = "draft"
    UPLOADED = "uploaded"


class AggregateSource(str, Enum):
    """Who computed a budget aggregate."""
    REMOTE = "remote"
    LOCAL = "local"


class SaveStatus(str, Enum):
    """Outcome of a partial save."""
    SAVED = "saved"
    NO_OP = "no_op"          # Nothing new to save - not an error
    FAILED = "failed"        # Remote rejected or unreachable
    INVALID = "invalid"      # Drafts failed validation, nothing sent


# =============================================================================
# LINE ITEMS
# =============================================================================

class Attachment(BaseModel):
    """A file reference attached to a line item or charge."""
    model_config = ConfigDict(str_strip_whitespace=True)

    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1)


class Charge(BaseModel):
    """
    One sub-charge of a line item's charge breakdown.

    e.g. a lift service invoice split into call-out, parts and labour.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_item_id)
    description: str = Field(default="", max_length=200)
    amount: Decimal = Decimal("0.00")
    category: str = Field(default="", max_length=100)
    documents: list[Attachment] = Field(default_factory=list)

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v) -> Decimal:
        return to_money(v)


class LineItem(BaseModel):
    """
    A single expense line in a monthly ledger.

    Items coming from the finance service carry their remote identifier
    as `id`; drafts get a fresh UUID. The two namespaces never collide,
    but code must read `provenance`, not the shape of `id`.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: str = Field(default_factory=new_item_id)
    item_name: str = Field(
        default="",
        description="Short name sent as itemName (falls back to description)"
    )
    description: str = ""
    amount: Decimal = Decimal("0.00")
    category: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    charge_breakdown: Optional[list[Charge]] = None
    provenance: Provenance = Provenance.NEW

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v) -> Decimal:
        return to_money(v)

    @property
    def is_draft(self) -> bool:
        return self.provenance == Provenance.NEW

    @property
    def display_name(self) -> str:
        return self.item_name or self.description

    @property
    def charges_total(self) -> Decimal:
        return sum((c.amount for c in self.charge_breakdown or []), Decimal("0.00"))


class MonthRecord(BaseModel):
    """
    One month of one fiscal year.

    Twelve of these always exist for a year; an untouched month is an
    empty DRAFT record, never a missing one.
    """

    year: int
    month: int = Field(..., ge=0, le=11, description="Zero-based month index")
    status: MonthStatus = MonthStatus.DRAFT
    line_items: list[LineItem] = Field(default_factory=list)
    # Set when a draft was removed; the local snapshot then differs from
    # what the finance service would report even with no NEW items left.
    dirty: bool = False

    @classmethod
    def empty(cls, year: int, month: int) -> 'MonthRecord':
        return cls(year=year, month=month)

    @property
    def month_number(self) -> int:
        """One-based month number used by the finance service."""
        return self.month + 1

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month]

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.line_items), Decimal("0.00"))

    @property
    def draft_items(self) -> list[LineItem]:
        return [item for item in self.line_items if item.provenance == Provenance.NEW]

    @property
    def has_local_changes(self) -> bool:
        """True if the local snapshot must win over remote data for this month."""
        return self.dirty or any(
            item.provenance == Provenance.NEW for item in self.line_items
        )

    def find_item(self, item_id: str) -> Optional[LineItem]:
        for item in self.line_items:
            if item.id == item_id:
                return item
        return None


# =============================================================================
# BUDGET MODELS
# =============================================================================

class AnnualBudget(BaseModel):
    """
    The single budget figure for a fiscal year.

    `remote_ledger_id` is None only for a budget created offline; such a
    year cannot be saved to until the finance service assigns an id.
    """

    year: int
    total_budget: Decimal = Field(..., ge=0)
    remote_ledger_id: Optional[str] = None
    fetched_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('total_budget', mode='before')
    @classmethod
    def coerce_total(cls, v) -> Decimal:
        return to_money(v)

    @property
    def is_offline(self) -> bool:
        return self.remote_ledger_id is None


class BudgetAggregate(BaseModel):
    """
    Budget-vs-spend summary for a year. Derived, never stored.
    """

    year: int
    total_budget: Decimal
    total_spent: Decimal
    remaining_budget: Decimal
    percentage_spent: Decimal
    source: AggregateSource

    @classmethod
    def from_totals(
        cls,
        year: int,
        total_budget: Decimal,
        total_spent: Decimal,
        source: AggregateSource,
    ) -> 'BudgetAggregate':
        """Build an aggregate, guarding the zero-budget division."""
        total_budget = to_money(total_budget)
        total_spent = to_money(total_spent)
        if total_budget == 0:
            percentage = Decimal("0.00")
        else:
            percentage = (total_spent / total_budget * 100).quantize(CENT)
        return cls(
            year=year,
            total_budget=total_budget,
            total_spent=total_spent,
            remaining_budget=total_budget - total_spent,
            percentage_spent=percentage,
            source=source,
        )


class BudgetPlanItem(BaseModel):
    """A planned allocation within the annual budget. Local only."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: str = Field(default_factory=new_item_id)
    description: str = Field(default="", max_length=200)
    amount: Decimal = Decimal("0.00")

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v) -> Decimal:
        return to_money(v)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a draft item."""

    item_id: Optional[str] = Field(
        default=None,
        description="Draft the issue belongs to"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'non_positive', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating a month's drafts before they are saved."""

    validated_at: datetime = Field(default_factory=datetime.utcnow)
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class SaveResult(BaseModel):
    """Outcome of saving a month's drafts."""

    year: int
    month: int = Field(..., ge=0, le=11)
    status: SaveStatus
    saved_count: int = Field(default=0, ge=0)
    saved_item_ids: list[str] = Field(default_factory=list)
    error_message: Optional[str] = None
    validation: Optional[ValidationResult] = None

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month]


class YearSelection(BaseModel):
    """How a selected year was resolved to a remote ledger."""

    year: int
    remote_ledger_id: Optional[str] = None
    created: bool = Field(
        default=False,
        description="True if the budget was created with the default amount"
    )

    @property
    def is_offline(self) -> bool:
        return self.remote_ledger_id is None


class YearView(BaseModel):
    """Everything the budgeting screen shows for the selected year."""

    year: int
    budget: Optional[AnnualBudget] = None
    months: list[MonthRecord]
    aggregate: BudgetAggregate
    months_from_remote: bool = Field(
        ...,
        description="False when monthly data could not be fetched"
    )
