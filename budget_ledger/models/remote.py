"""
Finance Service Models

Shapes exchanged with the remote finance service, plus the typed result
every gateway call returns.

DESIGN DECISION: The gateway never raises across its boundary. Each call
returns a GatewayResult so callers choose their own fallback per operation
(cached years, cached budget, local aggregate).
"""

from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from budget_ledger.models.ledger import to_money


T = TypeVar("T")


class ResultStatus(str, Enum):
    """Classification of a gateway call outcome."""
    OK = "ok"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class GatewayResult(BaseModel, Generic[T]):
    """
    Typed outcome of a finance service call.

    `data` may be populated on a non-OK result when the caller fell back to
    a cached value; `from_cache` says so explicitly.
    """

    status: ResultStatus
    data: Optional[T] = None
    error_message: Optional[str] = None
    from_cache: bool = False

    @classmethod
    def success(cls, data: Optional[T] = None) -> 'GatewayResult[T]':
        return cls(status=ResultStatus.OK, data=data)

    @classmethod
    def missing(cls, message: str) -> 'GatewayResult[T]':
        return cls(status=ResultStatus.NOT_FOUND, error_message=message)

    @classmethod
    def failure(
        cls,
        message: str,
        fallback: Optional[T] = None,
    ) -> 'GatewayResult[T]':
        return cls(
            status=ResultStatus.UNAVAILABLE,
            data=fallback,
            error_message=message,
            from_cache=fallback is not None,
        )

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def is_not_found(self) -> bool:
        return self.status == ResultStatus.NOT_FOUND

    @property
    def is_unavailable(self) -> bool:
        return self.status == ResultStatus.UNAVAILABLE


class _RemoteModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _ledger_id(v) -> Optional[str]:
    if v is None or v == "":
        return None
    return str(v)


class RemoteYear(_RemoteModel):
    """An entry of the finance service's year list."""

    year: int
    remote_ledger_id: str = Field(
        ...,
        validation_alias=AliasChoices("financeId", "remoteLedgerId", "remote_ledger_id"),
    )

    @field_validator('remote_ledger_id', mode='before')
    @classmethod
    def coerce_id(cls, v) -> Optional[str]:
        return _ledger_id(v)


class RemoteBudgetSnapshot(_RemoteModel):
    """
    Annual budget as reported by the finance service, including the
    aggregates it computed server-side.
    """

    year: Optional[int] = None
    total_budget: Decimal = Field(default=Decimal("0.00"), validation_alias=AliasChoices("totalBudget", "total_budget"))
    total_spent: Decimal = Field(default=Decimal("0.00"), validation_alias=AliasChoices("totalSpent", "total_spent"))
    remaining_budget: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("remainingBudget", "remaining_budget"),
    )
    percentage_spent: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("percentageSpent", "percentage_spent"),
    )
    remote_ledger_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("id", "financeId", "remoteLedgerId", "remote_ledger_id"),
    )

    @field_validator('total_budget', 'total_spent', mode='before')
    @classmethod
    def coerce_totals(cls, v) -> Decimal:
        return to_money(0 if v is None else v)

    @field_validator('remaining_budget', 'percentage_spent', mode='before')
    @classmethod
    def coerce_optional(cls, v) -> Optional[Decimal]:
        return None if v is None else to_money(v)

    @field_validator('remote_ledger_id', mode='before')
    @classmethod
    def coerce_id(cls, v) -> Optional[str]:
        return _ledger_id(v)


class RemoteItem(_RemoteModel):
    """A persisted line item as reported by the finance service."""

    id: str
    category: str = ""
    item_name: str = Field(default="", validation_alias=AliasChoices("itemName", "item_name"))
    description: str = ""
    amount: Decimal = Decimal("0.00")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v) -> str:
        return str(v)

    @field_validator('category', 'item_name', 'description', mode='before')
    @classmethod
    def none_to_empty(cls, v) -> str:
        return "" if v is None else v

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v) -> Decimal:
        return to_money(0 if v is None else v)


class RemoteMonth(_RemoteModel):
    """
    One month of the finance service's monthly breakdown.

    Months are identified by name ("July"), never by index; the merge
    engine normalizes the name to a position in the year.
    """

    month_name: str = Field(..., validation_alias=AliasChoices("month", "monthName", "month_name"))
    total_spent: Decimal = Field(default=Decimal("0.00"), validation_alias=AliasChoices("totalSpent", "total_spent"))
    items: list[RemoteItem] = Field(default_factory=list)

    @field_validator('month_name', mode='before')
    @classmethod
    def coerce_name(cls, v) -> str:
        return str(v)

    @field_validator('total_spent', mode='before')
    @classmethod
    def coerce_total(cls, v) -> Decimal:
        return to_money(0 if v is None else v)

    @field_validator('items', mode='before')
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v


class SaveItemPayload(_RemoteModel):
    """One entry of a save batch, exactly as the finance service expects it."""

    item_name: str
    category: str
    description: str
    amount: Decimal

    def to_wire(self) -> dict:
        return {
            "itemName": self.item_name,
            "category": self.category,
            "description": self.description,
            "amount": float(self.amount),
        }
