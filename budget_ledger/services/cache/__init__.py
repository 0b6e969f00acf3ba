"""Session cache package."""

from budget_ledger.services.cache.session_cache import SessionCache

__all__ = ["SessionCache"]
