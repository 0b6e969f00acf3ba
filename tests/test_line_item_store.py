"""
Tests for the line item store and the partial-save protocol

CRITICAL: These tests pin down that persisted items are never edited and
never resubmitted.
"""

from decimal import Decimal

import pytest

from budget_ledger.ledger import (
    ItemImmutableError,
    ItemNotFoundError,
    LineItemStore,
    MissingLedgerMappingError,
)
from budget_ledger.ledger.store import MONTHS_KEY
from budget_ledger.models.ledger import (
    Attachment,
    Charge,
    LineItem,
    MonthRecord,
    MonthStatus,
    Provenance,
    SaveStatus,
)


def seed_persisted(store, year, month, *amounts):
    """Install a month holding persisted remote items."""
    records = store.month_records(year)
    records[month] = MonthRecord(
        year=year,
        month=month,
        status=MonthStatus.UPLOADED,
        line_items=[
            LineItem(
                id=f"remote-{index}",
                description=f"Remote {index}",
                amount=amount,
                category="Maintenance",
                provenance=Provenance.PERSISTED_REMOTE,
            )
            for index, amount in enumerate(amounts)
        ],
    )
    store.replace_year(year, records)


class TestDrafting:
    """Tests for draft mutations."""

    def test_add_draft_item(self, store):
        """Test a new item is appended as NEW."""
        item = store.add_draft_item(2025, 2, description="Lift service", amount=Decimal("450"))

        assert item.provenance == Provenance.NEW
        month = store.month(2025, 2)
        assert [i.id for i in month.line_items] == [item.id]
        assert month.status == MonthStatus.DRAFT

    def test_reads_are_copies(self, store):
        """Test changing a returned item does not change the store."""
        item = store.add_draft_item(2025, 2, description="Lift service", amount=Decimal("450"))
        copy = store.month(2025, 2).line_items[0]
        copy.description = "Changed"
        assert store.get_item(2025, 2, item.id).description == "Lift service"

    def test_twelve_months_always_exist(self, store):
        """Test a year has twelve records even when untouched."""
        records = store.month_records(2025)
        assert [r.month for r in records] == list(range(12))
        assert all(r.status == MonthStatus.DRAFT and not r.line_items for r in records)

    def test_edit_draft(self, store):
        """Test drafts can be edited."""
        item = store.add_draft_item(2025, 2, description="Lift", amount=Decimal("400"))

        updated = store.edit_item(2025, 2, item.id, description="Lift service", amount="450")

        assert updated.description == "Lift service"
        assert updated.amount == Decimal("450.00")
        assert updated.provenance == Provenance.NEW

    def test_edit_unknown_field_rejected(self, store):
        """Test provenance cannot be edited through edit_item."""
        item = store.add_draft_item(2025, 2, description="Lift", amount=Decimal("400"))
        with pytest.raises(ValueError):
            store.edit_item(2025, 2, item.id, provenance=Provenance.PERSISTED_REMOTE)

    def test_edit_persisted_rejected(self, store):
        """Test persisted items are immutable."""
        seed_persisted(store, 2025, 2, Decimal("100"))
        with pytest.raises(ItemImmutableError):
            store.edit_item(2025, 2, "remote-0", amount=Decimal("1"))
        assert store.get_item(2025, 2, "remote-0").amount == Decimal("100.00")

    def test_edit_missing_item(self, store):
        """Test editing an unknown id raises ItemNotFoundError."""
        with pytest.raises(ItemNotFoundError):
            store.edit_item(2025, 2, "nope", amount=Decimal("1"))

    def test_invalid_month(self, store):
        """Test months are zero-based indexes."""
        with pytest.raises(ValueError):
            store.add_draft_item(2025, 12, description="x", amount=Decimal("1"))

    def test_remove_draft_marks_month_dirty(self, store):
        """Test removing a draft leaves a locally changed month."""
        seed_persisted(store, 2025, 2, Decimal("100"))
        item = store.add_draft_item(2025, 2, description="Lift", amount=Decimal("400"))

        store.remove_item(2025, 2, item.id)

        month = store.month(2025, 2)
        assert [i.id for i in month.line_items] == ["remote-0"]
        assert month.dirty
        assert month.has_local_changes

    def test_remove_persisted_rejected(self, store):
        """Test persisted items cannot be removed."""
        seed_persisted(store, 2025, 2, Decimal("100"))
        with pytest.raises(ItemImmutableError):
            store.remove_item(2025, 2, "remote-0")

    def test_attachments_and_charges(self, store):
        """Test attachments and charge breakdowns on drafts."""
        item = store.add_draft_item(2025, 2, description="Lift", amount=Decimal("450"))

        store.add_attachment(2025, 2, item.id, Attachment(file_name="invoice.pdf", file_url="https://files/1"))
        updated = store.set_charge_breakdown(
            2025, 2, item.id, [Charge(description="Parts", amount=Decimal("450"))]
        )
        assert [a.file_name for a in updated.attachments] == ["invoice.pdf"]
        assert updated.charges_total == Decimal("450.00")

        updated = store.remove_attachment(2025, 2, item.id, "invoice.pdf")
        assert updated.attachments == []
        assert store.set_charge_breakdown(2025, 2, item.id, None).charge_breakdown is None

    def test_attachments_on_persisted_rejected(self, store):
        """Test persisted items take no attachments."""
        seed_persisted(store, 2025, 2, Decimal("100"))
        with pytest.raises(ItemImmutableError):
            store.add_attachment(2025, 2, "remote-0", Attachment(file_name="a", file_url="b"))

    def test_drafts_survive_restart(self, store, gateway, registry, cache):
        """Test drafts are written through to the session cache."""
        item = store.add_draft_item(2025, 6, description="Gutter clearing", amount=Decimal("120"))

        reloaded = LineItemStore(gateway, registry, cache)

        assert reloaded.get_item(2025, 6, item.id).provenance == Provenance.NEW
        assert "2025" in cache.get(MONTHS_KEY)

    def test_replace_year_requires_twelve_months(self, store):
        """Test replace_year rejects an incomplete year."""
        with pytest.raises(ValueError):
            store.replace_year(2025, [MonthRecord.empty(2025, 0)])


class TestPartialSave:
    """Tests for save_new_items."""

    @pytest.mark.anyio
    async def test_missing_ledger_mapping_is_loud(self, store, gateway):
        """Test saving an unmapped year raises instead of doing nothing."""
        store.add_draft_item(2025, 2, description="Lift", amount=Decimal("450"))

        with pytest.raises(MissingLedgerMappingError):
            await store.save_new_items(2025, 2)
        assert gateway.calls_to("save") == []

    @pytest.mark.anyio
    async def test_saves_only_new_items(self, store, registry, gateway):
        """Test persisted items in the month are not resubmitted."""
        ledger_id = gateway.add_year(2025)
        registry.register(2025, ledger_id)
        seed_persisted(store, 2025, 2, Decimal("100"), Decimal("200"))
        item = store.add_draft_item(
            2025, 2, description="Lift service", amount=Decimal("450"), category="Maintenance"
        )

        result = await store.save_new_items(2025, 2)

        assert result.status == SaveStatus.SAVED
        assert result.saved_count == 1
        assert result.saved_item_ids == [item.id]
        (call,) = gateway.calls_to("save")
        _, sent_ledger, month_number, payloads = call
        assert sent_ledger == ledger_id
        assert month_number == 3
        assert [p.description for p in payloads] == ["Lift service"]

    @pytest.mark.anyio
    async def test_success_retags_and_uploads(self, store, registry, gateway):
        """Test saved items become SAVED_LOCAL and the month UPLOADED."""
        registry.register(2025, gateway.add_year(2025))
        item = store.add_draft_item(2025, 2, description="Lift service", amount=Decimal("450"))

        await store.save_new_items(2025, 2)

        month = store.month(2025, 2)
        assert month.status == MonthStatus.UPLOADED
        assert month.find_item(item.id).provenance == Provenance.SAVED_LOCAL
        assert not month.has_local_changes
        with pytest.raises(ItemImmutableError):
            store.edit_item(2025, 2, item.id, amount=Decimal("1"))

    @pytest.mark.anyio
    async def test_second_save_is_no_op(self, store, registry, gateway):
        """Test saving twice issues exactly one remote write."""
        registry.register(2025, gateway.add_year(2025))
        store.add_draft_item(2025, 2, description="Lift service", amount=Decimal("450"))

        first = await store.save_new_items(2025, 2)
        second = await store.save_new_items(2025, 2)

        assert first.status == SaveStatus.SAVED
        assert second.status == SaveStatus.NO_OP
        assert len(gateway.calls_to("save")) == 1

    @pytest.mark.anyio
    async def test_no_resubmission_with_persisted_items(self, store, registry, gateway):
        """Test a month of only persisted items submits nothing."""
        registry.register(2025, gateway.add_year(2025))
        seed_persisted(store, 2025, 4, Decimal("10"), Decimal("20"), Decimal("30"))

        result = await store.save_new_items(2025, 4)

        assert result.status == SaveStatus.NO_OP
        assert gateway.calls_to("save") == []

    @pytest.mark.anyio
    async def test_failure_changes_nothing(self, store, registry, gateway):
        """Test a failed batch leaves provenance and status untouched."""
        registry.register(2025, gateway.add_year(2025))
        first = store.add_draft_item(2025, 2, description="Lift", amount=Decimal("450"))
        second = store.add_draft_item(2025, 2, description="Cleaning", amount=Decimal("80"))
        gateway.fail.add("save")

        result = await store.save_new_items(2025, 2)

        assert result.status == SaveStatus.FAILED
        assert result.error_message
        month = store.month(2025, 2)
        assert month.status == MonthStatus.DRAFT
        assert {i.provenance for i in month.line_items} == {Provenance.NEW}
        assert {i.id for i in month.draft_items} == {first.id, second.id}

    @pytest.mark.anyio
    async def test_month_index_translated_once(self, store, registry, gateway):
        """Test July (index 6) is sent as month number 7."""
        registry.register(2025, gateway.add_year(2025))
        store.add_draft_item(2025, 6, description="Gutter clearing", amount=Decimal("120"))

        await store.save_new_items(2025, 6)

        assert gateway.calls_to("save")[0][2] == 7
        assert 7 in gateway.items[2025]

    @pytest.mark.anyio
    async def test_payload_fallbacks(self, store, registry, gateway):
        """Test itemName falls back to description and category to Uncategorised."""
        registry.register(2025, gateway.add_year(2025))
        store.add_draft_item(2025, 0, description="Bulbs", amount=Decimal("12"))

        await store.save_new_items(2025, 0)

        (payload,) = gateway.calls_to("save")[0][3]
        assert payload.item_name == "Bulbs"
        assert payload.category == "Uncategorised"


class TestProvenancePartition:
    """Provenance stays one of the three values through every operation."""

    @pytest.mark.anyio
    async def test_every_item_has_exactly_one_provenance(self, store, registry, gateway):
        """Test a mixed month keeps a clean partition after a save."""
        registry.register(2025, gateway.add_year(2025))
        seed_persisted(store, 2025, 2, Decimal("100"))
        store.add_draft_item(2025, 2, description="Lift", amount=Decimal("450"))
        await store.save_new_items(2025, 2)
        store.add_draft_item(2025, 2, description="Cleaning", amount=Decimal("80"))

        provenances = [i.provenance for i in store.month(2025, 2).line_items]

        assert provenances == [
            Provenance.PERSISTED_REMOTE,
            Provenance.SAVED_LOCAL,
            Provenance.NEW,
        ]
        assert all(p in set(Provenance) for p in provenances)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
