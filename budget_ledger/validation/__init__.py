"""
Draft line item validation.
"""

from budget_ledger.validation.validator import LineItemValidator

__all__ = ["LineItemValidator"]
