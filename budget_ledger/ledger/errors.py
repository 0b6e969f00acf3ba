"""
Ledger Errors

Raised for conditions that must abort the triggering operation. Remote
failures are NOT represented here - they travel as GatewayResult values.
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidYearError(LedgerError):
    """Year outside the configured range. Rejected before any remote call."""

    def __init__(self, year: int, min_year: int, max_year: int):
        self.year = year
        self.min_year = min_year
        self.max_year = max_year
        super().__init__(
            f"Year {year} is outside the allowed range {min_year}-{max_year}"
        )


class MissingLedgerMappingError(LedgerError):
    """
    A save was attempted for a year with no remote ledger id.

    Always a bug in the calling flow: the year must be resolved or created
    before its items can be saved.
    """

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"No remote ledger is registered for year {year}")


class ItemImmutableError(LedgerError):
    """Attempted to change an item that is no longer a draft."""

    def __init__(self, item_id: str, provenance: str):
        self.item_id = item_id
        self.provenance = provenance
        super().__init__(f"Line item {item_id} is {provenance} and cannot be changed")


class ItemNotFoundError(LedgerError):
    """No line item with this id in the given month."""
    pass


class NoYearSelectedError(LedgerError):
    """A year-scoped action was attempted before the user picked a year."""
    pass
