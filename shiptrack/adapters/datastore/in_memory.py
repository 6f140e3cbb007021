"""In-memory datastore for development and tests.

Thread-safe, process-local, and empty on startup. Returned rows are copies,
so callers cannot mutate stored state without going through ``update``.
"""

from __future__ import annotations

import copy
import threading
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Mapping

from shiptrack.adapters.datastore.base import AbstractDatastore, Row


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryDatastore(AbstractDatastore):
    """Dict-backed implementation of ``AbstractDatastore``."""

    def __init__(self) -> None:
        self._tables: defaultdict[str, dict[str, Row]] = defaultdict(dict)
        self._lock = threading.RLock()

    @staticmethod
    def _visible(row: Row, owner_id: str | None) -> bool:
        return row.get("user_id") in (None, owner_id)

    @staticmethod
    def _owned(row: Row, owner_id: str) -> bool:
        return row.get("user_id") == owner_id

    async def insert(self, table: str, row: Mapping[str, Any], *, owner_id: str | None) -> Row:
        stored: Row = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored["user_id"] = owner_id
        now = utc_now_iso()
        stored.setdefault("created_at", now)
        stored["updated_at"] = now

        with self._lock:
            self._tables[table][stored["id"]] = stored
            return copy.deepcopy(stored)

    async def select(
        self,
        table: str,
        *,
        owner_id: str | None,
        filters: Mapping[str, Any] | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Row], int]:
        filters = filters or {}
        with self._lock:
            matches = [
                row
                for row in self._tables[table].values()
                if self._visible(row, owner_id)
                and all(row.get(column) == value for column, value in filters.items())
            ]
            # Insertion order breaks ties between identical timestamps
            matches = list(reversed(matches))
            matches.sort(key=lambda row: row.get("created_at", ""), reverse=True)
            total = len(matches)
            end = None if limit is None else offset + limit
            return copy.deepcopy(matches[offset:end]), total

    async def get(self, table: str, row_id: str, *, owner_id: str | None) -> Row | None:
        with self._lock:
            row = self._tables[table].get(row_id)
            if row is None or not self._visible(row, owner_id):
                return None
            return copy.deepcopy(row)

    async def update(
        self,
        table: str,
        row_id: str,
        changes: Mapping[str, Any],
        *,
        owner_id: str,
    ) -> Row | None:
        with self._lock:
            row = self._tables[table].get(row_id)
            if row is None or not self._owned(row, owner_id):
                return None
            row.update({k: v for k, v in changes.items() if k not in ("id", "user_id")})
            row["updated_at"] = utc_now_iso()
            return copy.deepcopy(row)

    async def delete(self, table: str, row_id: str, *, owner_id: str) -> bool:
        with self._lock:
            row = self._tables[table].get(row_id)
            if row is None or not self._owned(row, owner_id):
                return False
            del self._tables[table][row_id]
            return True
