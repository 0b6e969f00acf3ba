"""
Building Ledger - Source Package

The financial ledger reconciliation engine behind the building-operations
console's budgeting screen: one annual budget per fiscal year plus twelve
monthly ledgers of expense line items, some persisted on the remote finance
service and some still local drafts.

DESIGN PRINCIPLES:
1. The user picks the year -> The engine never guesses
2. Persisted items are never resubmitted
3. Local drafts are never silently discarded
4. Every remote failure is surfaced, never masked by a fallback
5. The finance service is swappable behind one gateway
"""

__version__ = "1.0.0"
__author__ = "Building Ledger Team"
