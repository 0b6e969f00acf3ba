"""
Session Cache

Key-value store holding the last known years, budgets and monthly ledgers
so the budgeting screen still has something to show when the finance
service is unreachable at startup.

DESIGN DECISION: The cache is an explicit object injected into the
components that use it - never ambient global state. It is read once
at construction and written through on every mutation.

It is NOT a store of record. Anything served from it must be paired with
a notification that the remote call failed.
"""

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

import structlog


class SessionCache:
    """
    JSON-backed key-value cache.

    With no path the cache lives in memory only, for the lifetime of the
    session.
    """

    def __init__(self, path: Optional[Path | str] = None):
        self._path = Path(path) if path else None
        self._logger = structlog.get_logger()
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as e:
            self._logger.warning(
                "session_cache_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write(self) -> bool:
        if self._path is None:
            return True
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as handle:
                json.dump(self._data, handle, indent=2, sort_keys=True)
            return True
        except (OSError, TypeError) as e:
            # The in-memory copy is still current
            self._logger.error(
                "session_cache_write_failed",
                path=str(self._path),
                error=str(e),
            )
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the value so callers cannot mutate the cache."""
        if key not in self._data:
            return default
        return deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> bool:
        """
        Store a JSON-serializable value and write through.

        Returns False if the backing file could not be written.
        """
        self._data[key] = deepcopy(value)
        return self._write()

    def delete(self, key: str) -> bool:
        if self._data.pop(key, None) is None:
            return True
        return self._write()

    def keys(self) -> list[str]:
        return sorted(self._data)
