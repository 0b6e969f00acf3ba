"""
Monthly Merge Engine

Reconciles the finance service's monthly breakdown with the local store,
producing exactly one authoritative MonthRecord per calendar month.

PRECEDENCE (per month):
1. Local changes (a NEW item, a removed draft, or a save that completed
   while the monthly fetch was in flight): the local snapshot wins
   in its entirety. It was seeded from remote data at load time and
   already holds those items plus the local deltas; re-merging remote
   items into it would double-count or discard user work.
2. Otherwise, if the finance service reported the month: remote data,
   every item PERSISTED_REMOTE, status UPLOADED - even with zero items.
3. Otherwise: an empty DRAFT month.

When the monthly fetch fails, every month keeps what the store holds.

Months are matched by calendar position only. Remote months are named,
local ones are indexed; both are normalized to a zero-based index first.
"""

from typing import Optional

import structlog
from pydantic import BaseModel

from budget_ledger.ledger.months import month_index
from budget_ledger.ledger.store import LineItemStore
from budget_ledger.models.ledger import (
    LineItem,
    MonthRecord,
    MonthStatus,
    Provenance,
)
from budget_ledger.models.remote import RemoteItem, RemoteMonth
from budget_ledger.services.finance import PersistenceGateway


class MonthlyFetch(BaseModel):
    """
    The finance service's months for a year, not yet merged.

    `save_marker` is the store's save position when the request went out;
    months saved after it may be missing from `remote_months`.
    """
    year: int
    remote_months: Optional[list[RemoteMonth]] = None
    error_message: Optional[str] = None
    save_marker: int = 0

    @property
    def remote_available(self) -> bool:
        return self.remote_months is not None


class MergeOutcome(BaseModel):
    """Merged months of a year, and whether remote data took part."""
    year: int
    records: list[MonthRecord]
    remote_available: bool
    error_message: Optional[str] = None


class MonthlyMergeEngine:
    """
    Loads a year's monthly data and merges it with local drafts.

    Fetching and merging are separate steps. The merge reads the store when
    it runs, so a caller that awaits other work after `fetch_months` still
    merges against the store as it is at commit time. Nothing here writes
    to the store.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        store: LineItemStore,
    ):
        self._gateway = gateway
        self._store = store
        self._logger = structlog.get_logger()

    async def fetch_months(self, year: int) -> MonthlyFetch:
        """Fetch the year's months from the finance service."""
        marker = self._store.save_marker()
        result = await self._gateway.fetch_monthly_finance(year)

        if not result.ok:
            self._logger.warning(
                "months_remote_unavailable",
                year=year,
                error=result.error_message,
            )
            return MonthlyFetch(
                year=year,
                error_message=result.error_message or "Finance service unavailable",
                save_marker=marker,
            )

        return MonthlyFetch(year=year, remote_months=result.data or [], save_marker=marker)

    def reconcile(self, fetched: MonthlyFetch) -> MergeOutcome:
        """
        Merge fetched months with what the store holds right now.

        Months saved since the fetch went out keep their local snapshot;
        the fetched data may predate the save.
        """
        year = fetched.year
        saved_since = self._store.months_saved_since(year, fetched.save_marker)
        if saved_since and fetched.remote_available:
            self._logger.info(
                "months_saved_during_load",
                year=year,
                months=sorted(saved_since),
            )

        return MergeOutcome(
            year=year,
            records=self.merge(
                year,
                fetched.remote_months,
                self._store.month_records(year),
                keep_local=saved_since,
            ),
            remote_available=fetched.remote_available,
            error_message=fetched.error_message,
        )

    async def load(self, year: int) -> MergeOutcome:
        """Fetch the year's months and merge them with the store's view."""
        return self.reconcile(await self.fetch_months(year))

    def merge(
        self,
        year: int,
        remote_months: Optional[list[RemoteMonth]],
        local_records: list[MonthRecord],
        keep_local: Optional[set[int]] = None,
    ) -> list[MonthRecord]:
        """
        Produce twelve records, January first.

        Args:
            year: The fiscal year
            remote_months: The service's months, or None if unavailable
            local_records: What the store currently holds for the year
            keep_local: Months whose local snapshot wins regardless
        """
        local = {record.month: record for record in local_records}
        remote = self._index_remote(year, remote_months or [])
        keep_local = keep_local or set()

        merged = []
        for month in range(12):
            local_record = local.get(month)

            if remote_months is None:
                record = local_record or MonthRecord.empty(year, month)
                merged.append(record.model_copy(deep=True))
                continue

            if local_record is not None and (
                local_record.has_local_changes or month in keep_local
            ):
                self._logger.debug("month_merged", year=year, month=month, source="local")
                merged.append(local_record.model_copy(deep=True))
            elif month in remote:
                self._logger.debug("month_merged", year=year, month=month, source="remote")
                merged.append(
                    MonthRecord(
                        year=year,
                        month=month,
                        status=MonthStatus.UPLOADED,
                        line_items=[self._to_line_item(item) for item in remote[month]],
                    )
                )
            else:
                merged.append(MonthRecord.empty(year, month))

        return merged

    def _index_remote(
        self,
        year: int,
        remote_months: list[RemoteMonth],
    ) -> dict[int, list[RemoteItem]]:
        """Remote items by zero-based month; repeated names are combined."""
        indexed: dict[int, list[RemoteItem]] = {}
        for remote_month in remote_months:
            try:
                month = month_index(remote_month.month_name)
            except ValueError:
                self._logger.warning(
                    "remote_month_unrecognized",
                    year=year,
                    month_name=remote_month.month_name,
                )
                continue
            indexed.setdefault(month, []).extend(remote_month.items)
        return indexed

    @staticmethod
    def _to_line_item(item: RemoteItem) -> LineItem:
        return LineItem(
            id=item.id,
            item_name=item.item_name,
            description=item.description or item.item_name,
            amount=item.amount,
            category=item.category,
            provenance=Provenance.PERSISTED_REMOTE,
        )
