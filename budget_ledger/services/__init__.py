"""Services package."""

from budget_ledger.services.cache import SessionCache
from budget_ledger.services.finance import (
    FinanceServiceClient,
    FinanceServiceError,
    HttpFinanceGateway,
    PersistenceGateway,
    RemoteNotFoundError,
    RemoteUnavailableError,
)

__all__ = [
    # Cache
    "SessionCache",
    # Finance service
    "FinanceServiceClient",
    "FinanceServiceError",
    "HttpFinanceGateway",
    "PersistenceGateway",
    "RemoteNotFoundError",
    "RemoteUnavailableError",
]
