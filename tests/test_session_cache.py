"""
Tests for the session cache
"""

import json

import pytest

from budget_ledger.services.cache import SessionCache


class TestSessionCache:
    """Tests for SessionCache."""

    def test_memory_only(self):
        """Test a cache without a path keeps values in memory."""
        cache = SessionCache()
        assert cache.set("financials_ledger_ids", {"2025": "abc"})
        assert cache.get("financials_ledger_ids") == {"2025": "abc"}
        assert cache.get("missing", []) == []

    def test_get_returns_copy(self):
        """Test callers cannot mutate cached values in place."""
        cache = SessionCache()
        cache.set("key", {"a": [1]})
        value = cache.get("key")
        value["a"].append(2)
        assert cache.get("key") == {"a": [1]}

    def test_write_through_and_reload(self, tmp_path):
        """Test values survive a new cache on the same file."""
        path = tmp_path / "cache" / "session.json"
        SessionCache(path).set("financials_budget_by_year", {"2025": {"total_budget": "1"}})

        assert json.loads(path.read_text())["financials_budget_by_year"]["2025"]["total_budget"] == "1"
        assert SessionCache(path).get("financials_budget_by_year") == {"2025": {"total_budget": "1"}}

    def test_delete(self, tmp_path):
        """Test delete removes the key from memory and file."""
        path = tmp_path / "session.json"
        cache = SessionCache(path)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a")
        assert cache.keys() == ["b"]
        assert SessionCache(path).keys() == ["b"]
        assert cache.delete("not-there")

    def test_unreadable_file_starts_empty(self, tmp_path):
        """Test a corrupt cache file is ignored."""
        path = tmp_path / "session.json"
        path.write_text("{not json")
        assert SessionCache(path).keys() == []

    def test_unserializable_value_reports_failure(self, tmp_path):
        """Test a failed write returns False but keeps the value in memory."""
        cache = SessionCache(tmp_path / "session.json")
        assert cache.set("bad", {"value": object()}) is False
        assert "bad" in cache.keys()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
