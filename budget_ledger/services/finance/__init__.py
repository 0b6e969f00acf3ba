"""
Finance Service Package

Provides the abstract gateway to the remote finance service and its
HTTP implementation.
"""

from budget_ledger.services.finance.interface import (
    FinanceServiceError,
    PersistenceGateway,
    RemoteNotFoundError,
    RemoteUnavailableError,
)
from budget_ledger.services.finance.http_gateway import (
    FinanceServiceClient,
    HttpFinanceGateway,
)

__all__ = [
    # Interface
    "PersistenceGateway",
    # Exceptions
    "FinanceServiceError",
    "RemoteNotFoundError",
    "RemoteUnavailableError",
    # HTTP implementation
    "FinanceServiceClient",
    "HttpFinanceGateway",
]
