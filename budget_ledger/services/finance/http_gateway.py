"""
HTTP Finance Service Implementation

Talks to the building-management backend's finance endpoints:

    GET  /api/finance/years
    GET  /api/finance/annual/{year}
    POST /api/finance/annual/{year}            body {"budget": amount}
    PUT  /api/finance/annual/{year}?budget=...
    GET  /api/finance/monthly/{year}
    POST /api/finance/{financeId}/items/{month} body [item, ...]

Every response is wrapped in an envelope {success, data, message}.

TRADEOFFS:
- A fresh AsyncClient per request (no pooling); call volume is a handful
  of requests per year selection
- Only transient failures are retried (transport errors, timeouts, 5xx,
  408, 429); a 4xx answer will not change on retry

The implementation follows the abstract interface, so the reconciliation
engine never sees httpx or the envelope format.
"""

from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from budget_ledger.config import FinanceServiceSettings, get_settings
from budget_ledger.models.remote import (
    GatewayResult,
    RemoteBudgetSnapshot,
    RemoteMonth,
    RemoteYear,
    SaveItemPayload,
)
from budget_ledger.services.finance.interface import (
    PersistenceGateway,
    RemoteNotFoundError,
    RemoteUnavailableError,
)


RETRYABLE_STATUS_CODES = {408, 425, 429}


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RemoteUnavailableError) and exc.retryable


def _error_message(response: httpx.Response) -> str:
    """Best-effort message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or response.reason_phrase)
    return response.reason_phrase


class FinanceServiceClient:
    """
    Low-level finance service client.

    Handles authentication headers, the response envelope and retry logic.
    """

    def __init__(
        self,
        settings: Optional[FinanceServiceSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().finance_service
        self._transport = transport
        self._logger = structlog.get_logger()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._settings.auth_token:
            headers["Authorization"] = f"Bearer {self._settings.auth_token}"
        return headers

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self._logger.warning(
            "finance_request_retry",
            attempt=retry_state.attempt_number,
            error=str(exc),
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the envelope's `data`.

        Raises:
            RemoteNotFoundError: 404, or the envelope reports "not found"
            RemoteUnavailableError: anything else that is not a success
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_wait_min,
                max=self._settings.retry_wait_max,
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send(method, path, params=params, json=json)
        except RemoteUnavailableError as e:
            self._logger.error(
                "finance_request_failed",
                method=method,
                path=path,
                error=str(e),
            )
            raise

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(
                f"Finance service timed out on {method} {path}: {e}",
                retryable=True,
            )
        except httpx.RequestError as e:
            raise RemoteUnavailableError(
                f"Could not reach the finance service: {e}",
                retryable=True,
            )

        if response.status_code == 404:
            raise RemoteNotFoundError(_error_message(response))
        if response.status_code >= 400:
            status = response.status_code
            raise RemoteUnavailableError(
                f"Finance service returned {status}: {_error_message(response)}",
                retryable=status >= 500 or status in RETRYABLE_STATUS_CODES,
            )

        try:
            body = response.json()
        except ValueError:
            raise RemoteUnavailableError(
                f"Finance service returned a malformed response for {method} {path}"
            )
        return self._unwrap(body)

    def _unwrap(self, body: Any) -> Any:
        """Strip the {success, data, message} envelope."""
        if not isinstance(body, dict) or ("success" not in body and "data" not in body):
            return body

        if body.get("success") is False:
            message = str(body.get("message") or body.get("error") or "Request rejected")
            if "not found" in message.lower():
                raise RemoteNotFoundError(message)
            raise RemoteUnavailableError(message)

        return body.get("data")


def _as_list(data: Any, field: str) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        raise RemoteUnavailableError(
            f"Finance service sent {type(data).__name__} where {field} should be a list"
        )
    return data


class HttpFinanceGateway(PersistenceGateway):
    """
    HTTP implementation of the finance service gateway.

    Converts every remote failure into a GatewayResult.
    """

    def __init__(
        self,
        client: Optional[FinanceServiceClient] = None,
    ):
        self._client = client or FinanceServiceClient()
        self._logger = structlog.get_logger()

    async def _call(
        self,
        operation: str,
        func: Callable[[], Awaitable[Any]],
    ) -> GatewayResult:
        try:
            return GatewayResult.success(await func())
        except RemoteNotFoundError as e:
            self._logger.info("finance_not_found", operation=operation, error=str(e))
            return GatewayResult.missing(str(e))
        except RemoteUnavailableError as e:
            return GatewayResult.failure(str(e))
        except ValidationError as e:
            self._logger.error(
                "finance_response_invalid",
                operation=operation,
                errors=e.error_count(),
            )
            return GatewayResult.failure(
                f"Finance service sent an unexpected {operation} response "
                f"({e.error_count()} invalid field(s))"
            )

    async def fetch_available_years(self) -> GatewayResult[list[RemoteYear]]:
        async def run() -> list[RemoteYear]:
            data = await self._client.request("GET", "/api/finance/years")
            return [RemoteYear.model_validate(entry) for entry in _as_list(data, "years")]

        return await self._call("years", run)

    async def fetch_annual_budget(self, year: int) -> GatewayResult[RemoteBudgetSnapshot]:
        async def run() -> RemoteBudgetSnapshot:
            data = await self._client.request("GET", f"/api/finance/annual/{year}")
            if data is None:
                raise RemoteNotFoundError(f"No budget exists for {year}")
            return self._snapshot(data, year)

        return await self._call("annual budget", run)

    async def create_annual_budget(
        self,
        year: int,
        default_amount: Decimal,
    ) -> GatewayResult[RemoteBudgetSnapshot]:
        async def run() -> RemoteBudgetSnapshot:
            data = await self._client.request(
                "POST",
                f"/api/finance/annual/{year}",
                json={"budget": float(default_amount)},
            )
            if data is None:
                # Created, but the response did not echo the ledger id
                data = await self._client.request("GET", f"/api/finance/annual/{year}")
            if data is None:
                raise RemoteUnavailableError(f"Budget for {year} was not returned after creation")
            return self._snapshot(data, year)

        return await self._call("create budget", run)

    async def update_annual_budget(
        self,
        year: int,
        new_amount: Decimal,
    ) -> GatewayResult[None]:
        async def run() -> None:
            await self._client.request(
                "PUT",
                f"/api/finance/annual/{year}",
                params={"budget": str(new_amount)},
            )
            return None

        return await self._call("update budget", run)

    async def fetch_monthly_finance(self, year: int) -> GatewayResult[list[RemoteMonth]]:
        async def run() -> list[RemoteMonth]:
            data = await self._client.request("GET", f"/api/finance/monthly/{year}")
            if isinstance(data, dict):
                months = data.get("monthlyExpenses") or []
            else:
                months = data or []
            return [RemoteMonth.model_validate(entry) for entry in _as_list(months, "monthlyExpenses")]

        return await self._call("monthly finance", run)

    async def save_batch(
        self,
        remote_ledger_id: str,
        month_number: int,
        items: list[SaveItemPayload],
    ) -> GatewayResult[None]:
        if not 1 <= month_number <= 12:
            self._logger.error("finance_save_rejected", month_number=month_number)
            return GatewayResult.failure(f"Month number must be 1-12, got {month_number}")

        async def run() -> None:
            await self._client.request(
                "POST",
                f"/api/finance/{remote_ledger_id}/items/{month_number}",
                json=[item.to_wire() for item in items],
            )
            return None

        return await self._call("save items", run)

    @staticmethod
    def _snapshot(data: Any, year: int) -> RemoteBudgetSnapshot:
        snapshot = RemoteBudgetSnapshot.model_validate(data)
        if snapshot.year is None:
            snapshot = snapshot.model_copy(update={"year": year})
        return snapshot
