"""
Abstract Finance Service Interface

DESIGN DECISION: Every component talks to the remote finance service
through this one narrow interface. This allows us to:
1. Swap the HTTP backend for another transport later
2. Use an in-memory gateway for testing
3. Keep reconciliation logic decoupled from the wire format

CONTRACT: Implementations never raise for remote failures. Each method
returns a GatewayResult with status OK, NOT_FOUND or UNAVAILABLE. The
exceptions below are for use inside an implementation only.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from budget_ledger.models.remote import (
    GatewayResult,
    RemoteBudgetSnapshot,
    RemoteMonth,
    RemoteYear,
    SaveItemPayload,
)


class PersistenceGateway(ABC):
    """
    Abstract interface for the remote finance service.

    Any implementation (HTTP, in-memory, etc.) must implement these methods.
    """

    @abstractmethod
    async def fetch_available_years(self) -> GatewayResult[list[RemoteYear]]:
        """
        List the fiscal years known to the finance service.

        Returns:
            OK with the years and their ledger ids, or UNAVAILABLE
        """
        pass

    @abstractmethod
    async def fetch_annual_budget(self, year: int) -> GatewayResult[RemoteBudgetSnapshot]:
        """
        Fetch a year's budget together with its server-computed aggregates.

        Returns:
            OK with the snapshot, NOT_FOUND if the year has no budget,
            or UNAVAILABLE
        """
        pass

    @abstractmethod
    async def create_annual_budget(
        self,
        year: int,
        default_amount: Decimal,
    ) -> GatewayResult[RemoteBudgetSnapshot]:
        """
        Create a year's budget.

        Not idempotent: callers must check with fetch_annual_budget first.

        Returns:
            OK with the created snapshot, or UNAVAILABLE
        """
        pass

    @abstractmethod
    async def update_annual_budget(
        self,
        year: int,
        new_amount: Decimal,
    ) -> GatewayResult[None]:
        """
        Replace a year's budget figure.

        Returns:
            OK, NOT_FOUND or UNAVAILABLE
        """
        pass

    @abstractmethod
    async def fetch_monthly_finance(self, year: int) -> GatewayResult[list[RemoteMonth]]:
        """
        Fetch every month the finance service holds items for.

        Months are named, not indexed, and may be absent or out of order.

        Returns:
            OK with zero or more months, or UNAVAILABLE
        """
        pass

    @abstractmethod
    async def save_batch(
        self,
        remote_ledger_id: str,
        month_number: int,
        items: list[SaveItemPayload],
    ) -> GatewayResult[None]:
        """
        Append items to one month of a ledger.

        The service has append semantics only - no upsert. The whole batch
        succeeds or fails as a unit.

        Args:
            remote_ledger_id: Ledger id assigned by the finance service
            month_number: ONE-based month (1 = January)
            items: The items to append

        Returns:
            OK or UNAVAILABLE
        """
        pass


class FinanceServiceError(Exception):
    """Base exception for finance service calls."""
    pass


class RemoteNotFoundError(FinanceServiceError):
    """The requested year or budget does not exist remotely."""
    pass


class RemoteUnavailableError(FinanceServiceError):
    """Network failure, timeout, server error or rejected request."""

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)
