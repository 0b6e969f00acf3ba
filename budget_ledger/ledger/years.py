"""
Year Registry

Tracks which fiscal years exist and maps each to the ledger id the
finance service assigned it.

DESIGN DECISION: The registry never picks a year on its own - not even
the current calendar year. Selection is always an explicit user action,
so no year-scoped request goes out before the user has context.
"""

from typing import Optional

import structlog

from budget_ledger.config import LedgerSettings, get_settings
from budget_ledger.ledger.budget import BudgetLedger
from budget_ledger.ledger.errors import InvalidYearError
from budget_ledger.models.ledger import YearSelection
from budget_ledger.models.remote import GatewayResult, ResultStatus
from budget_ledger.services.cache import SessionCache
from budget_ledger.services.finance import PersistenceGateway


LEDGER_IDS_KEY = "financials_ledger_ids"


class YearRegistry:
    """
    Year discovery and the year -> remote ledger id mapping.

    The registry is the only writer of that mapping.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        budget_ledger: BudgetLedger,
        cache: Optional[SessionCache] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._gateway = gateway
        self._budget_ledger = budget_ledger
        self._cache = cache or SessionCache()
        self._settings = settings or get_settings().ledger
        self._logger = structlog.get_logger()
        self._ledger_ids: dict[int, str] = self._load()

    def _load(self) -> dict[int, str]:
        ledger_ids = {}
        for key, value in self._cache.get(LEDGER_IDS_KEY, {}).items():
            try:
                ledger_ids[int(key)] = str(value)
            except ValueError:
                self._logger.warning("cached_year_skipped", year=key)
        return ledger_ids

    def _persist(self) -> None:
        self._cache.set(
            LEDGER_IDS_KEY,
            {str(year): ledger_id for year, ledger_id in self._ledger_ids.items()},
        )

    @property
    def known_years(self) -> list[int]:
        return sorted(self._ledger_ids)

    def validate_year(self, year: int) -> int:
        """
        Raises:
            InvalidYearError: If the year is outside the configured range
        """
        if isinstance(year, bool) or not isinstance(year, int) or not self._settings.year_in_bounds(year):
            raise InvalidYearError(year, self._settings.min_year, self._settings.max_year)
        return year

    def register(self, year: int, remote_ledger_id: str) -> None:
        self.validate_year(year)
        if self._ledger_ids.get(year) == remote_ledger_id:
            return
        self._ledger_ids[year] = remote_ledger_id
        self._persist()

    def resolve_ledger_id(self, year: int) -> Optional[str]:
        """The remote ledger id for the year, or None if it has none yet."""
        return self._ledger_ids.get(year)

    async def list_available_years(self) -> GatewayResult[list[int]]:
        """
        Years known to the finance service.

        Falls back to the years cached from earlier sessions; with neither,
        the result carries an empty list. Years outside the configured range
        are ignored.
        """
        result = await self._gateway.fetch_available_years()

        if result.ok:
            for entry in result.data or []:
                if not self._settings.year_in_bounds(entry.year):
                    self._logger.warning("remote_year_out_of_range", year=entry.year)
                    continue
                self.register(entry.year, entry.remote_ledger_id)
            return GatewayResult.success(self.known_years)

        cached = self.known_years
        self._logger.warning(
            "years_from_cache" if cached else "years_unavailable",
            years=cached,
            error=result.error_message,
        )
        return GatewayResult(
            status=ResultStatus.UNAVAILABLE,
            data=cached,
            error_message=result.error_message or "Finance service unavailable",
            from_cache=bool(cached),
        )

    async def select_year(
        self,
        year: int,
        create_if_missing: bool = False,
    ) -> GatewayResult[YearSelection]:
        """
        Validate a year and resolve its remote ledger id.

        If the finance service has no budget for the year and the user asked
        for it to be created, the budget ledger creates one with the default
        amount and the returned ledger id is registered.

        Raises:
            InvalidYearError: Before any remote call, if out of range

        Returns:
            OK with the resolved selection; NOT_FOUND if absent and not
            created; UNAVAILABLE if the finance service could not be asked.
            A budget that could only be created offline comes back as
            UNAVAILABLE with a selection that has no ledger id.
        """
        self.validate_year(year)

        known = self._ledger_ids.get(year)
        if known is not None:
            return GatewayResult.success(YearSelection(year=year, remote_ledger_id=known))

        fetched = await self._budget_ledger.fetch(year)
        if fetched.ok and fetched.data.remote_ledger_id:
            self.register(year, fetched.data.remote_ledger_id)
            return GatewayResult.success(
                YearSelection(year=year, remote_ledger_id=fetched.data.remote_ledger_id)
            )

        if fetched.is_not_found and create_if_missing:
            created = await self._budget_ledger.create_with_default(year)
            if created.ok and created.data.remote_ledger_id:
                self.register(year, created.data.remote_ledger_id)
                return GatewayResult.success(
                    YearSelection(
                        year=year,
                        remote_ledger_id=created.data.remote_ledger_id,
                        created=True,
                    )
                )
            return GatewayResult.failure(
                created.error_message or f"Budget for {year} was created without a ledger id",
                fallback=YearSelection(year=year, created=True),
            )

        if fetched.is_not_found:
            return GatewayResult.missing(fetched.error_message or f"No budget for {year}")

        return GatewayResult.failure(
            fetched.error_message or f"Budget for {year} has no ledger id"
        )
