"""
Line Item Store

In-memory table of line items keyed by (year, month), and the partial-save
protocol that sends drafts to the finance service.

CRITICAL: Only items with provenance NEW are ever submitted. The finance
service only appends; resubmitting a persisted item duplicates it.

The store is the only component that mutates line items. Every mutation
is written through to the session cache so drafts survive a restart.
"""

from decimal import Decimal
from typing import Optional

import structlog
from pydantic import ValidationError

from budget_ledger.ledger.errors import (
    ItemImmutableError,
    ItemNotFoundError,
    MissingLedgerMappingError,
)
from budget_ledger.ledger.months import validate_month
from budget_ledger.ledger.years import YearRegistry
from budget_ledger.models.ledger import (
    Attachment,
    Charge,
    LineItem,
    MonthRecord,
    MonthStatus,
    Provenance,
    SaveResult,
    SaveStatus,
)
from budget_ledger.models.remote import SaveItemPayload
from budget_ledger.services.cache import SessionCache
from budget_ledger.services.finance import PersistenceGateway


MONTHS_KEY = "financials_months_by_year"
UNCATEGORISED = "Uncategorised"

EDITABLE_FIELDS = {"item_name", "description", "amount", "category"}


class LineItemStore:
    """
    Owns every LineItem of the session.

    Callers always receive copies; changes go through the store's methods.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        year_registry: YearRegistry,
        cache: Optional[SessionCache] = None,
    ):
        self._gateway = gateway
        self._years = year_registry
        self._cache = cache or SessionCache()
        self._logger = structlog.get_logger()
        self._months: dict[int, list[MonthRecord]] = self._load()
        # Bumped on every successful save; lets a reload tell which months
        # changed while its monthly fetch was in flight.
        self._save_sequence = 0
        self._saved_at: dict[tuple[int, int], int] = {}

    # -------------------------------------------------------------------------
    # Cache lifecycle
    # -------------------------------------------------------------------------

    def _load(self) -> dict[int, list[MonthRecord]]:
        months = {}
        for key, records in self._cache.get(MONTHS_KEY, {}).items():
            try:
                year = int(key)
                loaded = [MonthRecord.model_validate(r) for r in records]
            except (ValueError, ValidationError):
                self._logger.warning("cached_months_skipped", year=key)
                continue
            months[year] = self._complete_year(year, loaded)
        return months

    def _persist(self) -> None:
        self._cache.set(
            MONTHS_KEY,
            {
                str(year): [record.model_dump(mode="json") for record in records]
                for year, records in self._months.items()
            },
        )

    @staticmethod
    def _complete_year(year: int, records: list[MonthRecord]) -> list[MonthRecord]:
        """Exactly twelve records, in month order."""
        by_month = {record.month: record for record in records if record.year == year}
        return [by_month.get(month) or MonthRecord.empty(year, month) for month in range(12)]

    def _year(self, year: int) -> list[MonthRecord]:
        if year not in self._months:
            self._months[year] = [MonthRecord.empty(year, month) for month in range(12)]
        return self._months[year]

    def _record(self, year: int, month: int) -> MonthRecord:
        validate_month(month)
        return self._year(year)[month]

    def _draft(self, record: MonthRecord, item_id: str) -> LineItem:
        item = record.find_item(item_id)
        if item is None:
            raise ItemNotFoundError(
                f"No line item {item_id} in {record.month_name} {record.year}"
            )
        if item.provenance != Provenance.NEW:
            raise ItemImmutableError(item_id, item.provenance.value)
        return item

    def _replace_item(self, record: MonthRecord, updated: LineItem) -> LineItem:
        for index, item in enumerate(record.line_items):
            if item.id == updated.id:
                record.line_items[index] = updated
                break
        self._persist()
        return updated.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def month_records(self, year: int) -> list[MonthRecord]:
        """All twelve months of the year (copies)."""
        if year not in self._months:
            return [MonthRecord.empty(year, month) for month in range(12)]
        return [record.model_copy(deep=True) for record in self._months[year]]

    def month(self, year: int, month: int) -> MonthRecord:
        validate_month(month)
        if year not in self._months:
            return MonthRecord.empty(year, month)
        return self._months[year][month].model_copy(deep=True)

    def get_item(self, year: int, month: int, item_id: str) -> LineItem:
        item = self.month(year, month).find_item(item_id)
        if item is None:
            raise ItemNotFoundError(f"No line item {item_id} in month {month} of {year}")
        return item

    def total_spent(self, year: int) -> Decimal:
        """Sum of every known item amount in the year, drafts included."""
        return sum(
            (record.total for record in self._months.get(year, [])),
            Decimal("0.00"),
        )

    # -------------------------------------------------------------------------
    # Year replacement (after a merge)
    # -------------------------------------------------------------------------

    def save_marker(self) -> int:
        """Position in the save sequence; pass it to `months_saved_since`."""
        return self._save_sequence

    def months_saved_since(self, year: int, marker: int) -> set[int]:
        """Months of the year with a successful save after `marker` was taken."""
        return {
            month
            for (saved_year, month), sequence in self._saved_at.items()
            if saved_year == year and sequence > marker
        }

    def replace_year(self, year: int, records: list[MonthRecord]) -> None:
        """Install a merged view of the year."""
        months = sorted(record.month for record in records)
        if months != list(range(12)) or any(record.year != year for record in records):
            raise ValueError(f"Expected twelve months of {year}, got {months}")
        self._months[year] = [
            record.model_copy(deep=True)
            for record in sorted(records, key=lambda r: r.month)
        ]
        self._persist()

    # -------------------------------------------------------------------------
    # Draft mutations
    # -------------------------------------------------------------------------

    def add_draft_item(
        self,
        year: int,
        month: int,
        *,
        item_name: str = "",
        description: str = "",
        amount: Decimal = Decimal("0"),
        category: str = "",
    ) -> LineItem:
        """Append a fresh NEW item to the month."""
        record = self._record(year, month)
        item = LineItem(
            item_name=item_name,
            description=description,
            amount=amount,
            category=category,
            provenance=Provenance.NEW,
        )
        record.line_items.append(item)
        self._persist()
        return item.model_copy(deep=True)

    def edit_item(self, year: int, month: int, item_id: str, **fields) -> LineItem:
        """
        Change a draft's fields.

        Raises:
            ItemImmutableError: If the item is not a draft
            ItemNotFoundError: If the month has no such item
            ValueError: For unknown or invalid fields
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit line item field(s): {sorted(unknown)}")

        record = self._record(year, month)
        item = self._draft(record, item_id)
        updated = LineItem.model_validate({**item.model_dump(), **fields})
        return self._replace_item(record, updated)

    def remove_item(self, year: int, month: int, item_id: str) -> None:
        """
        Delete a draft. Persisted items cannot be removed.
        """
        record = self._record(year, month)
        item = self._draft(record, item_id)
        record.line_items = [i for i in record.line_items if i.id != item.id]
        record.dirty = True
        self._persist()

    def add_attachment(
        self,
        year: int,
        month: int,
        item_id: str,
        attachment: Attachment,
    ) -> LineItem:
        record = self._record(year, month)
        item = self._draft(record, item_id)
        updated = item.model_copy(
            update={"attachments": [*item.attachments, attachment]},
            deep=True,
        )
        return self._replace_item(record, updated)

    def remove_attachment(
        self,
        year: int,
        month: int,
        item_id: str,
        file_name: str,
    ) -> LineItem:
        record = self._record(year, month)
        item = self._draft(record, item_id)
        updated = item.model_copy(
            update={"attachments": [a for a in item.attachments if a.file_name != file_name]},
            deep=True,
        )
        return self._replace_item(record, updated)

    def set_charge_breakdown(
        self,
        year: int,
        month: int,
        item_id: str,
        charges: Optional[list[Charge]],
    ) -> LineItem:
        """Replace the draft's charge breakdown; None clears it."""
        record = self._record(year, month)
        item = self._draft(record, item_id)
        updated = item.model_copy(
            update={"charge_breakdown": list(charges) if charges is not None else None},
            deep=True,
        )
        return self._replace_item(record, updated)

    # -------------------------------------------------------------------------
    # Partial save
    # -------------------------------------------------------------------------

    async def save_new_items(self, year: int, month: int) -> SaveResult:
        """
        Submit the month's NEW items - and only those - as one batch.

        Flow:
        1. Resolve the year's remote ledger id (fail fast if missing)
        2. Filter the month to NEW items; none -> NO_OP
        3. Send the batch with the ONE-based month number
        4. On success, tag the submitted items SAVED_LOCAL and the month
           UPLOADED; on failure change nothing

        Raises:
            MissingLedgerMappingError: If the year has no remote ledger id
        """
        record = self._record(year, month)

        remote_ledger_id = self._years.resolve_ledger_id(year)
        if remote_ledger_id is None:
            self._logger.error("missing_ledger_mapping", year=year, month=month)
            raise MissingLedgerMappingError(year)

        drafts = record.draft_items
        if not drafts:
            return SaveResult(year=year, month=month, status=SaveStatus.NO_OP)

        submitted = [item.id for item in drafts]
        result = await self._gateway.save_batch(
            remote_ledger_id,
            record.month_number,
            [self._payload(item) for item in drafts],
        )

        if not result.ok:
            self._logger.warning(
                "line_items_save_failed",
                year=year,
                month=month,
                count=len(submitted),
                error=result.error_message,
            )
            return SaveResult(
                year=year,
                month=month,
                status=SaveStatus.FAILED,
                error_message=result.error_message,
            )

        # Look the record up again: the year may have been re-merged while
        # the batch was in flight.
        record = self._record(year, month)
        submitted_ids = set(submitted)
        for item in record.line_items:
            if item.id in submitted_ids and item.provenance == Provenance.NEW:
                item.provenance = Provenance.SAVED_LOCAL
        record.status = MonthStatus.UPLOADED
        record.dirty = False
        self._save_sequence += 1
        self._saved_at[(year, month)] = self._save_sequence
        self._persist()

        self._logger.info(
            "line_items_saved",
            year=year,
            month=month,
            month_number=record.month_number,
            count=len(submitted),
        )
        return SaveResult(
            year=year,
            month=month,
            status=SaveStatus.SAVED,
            saved_count=len(submitted),
            saved_item_ids=submitted,
        )

    @staticmethod
    def _payload(item: LineItem) -> SaveItemPayload:
        return SaveItemPayload(
            item_name=item.item_name or item.description,
            category=item.category or UNCATEGORISED,
            description=item.description or item.item_name,
            amount=item.amount,
        )
